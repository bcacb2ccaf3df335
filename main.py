# Main script to run a static export from the command line
import sys
import logging

from config_loader import load_config
from logger_setup import setup_logging
from exporter import run_export


# --- Main Execution ---
def main(argv=None):
    """Loads the configuration, runs one export and exits with 0 on success, 1 otherwise."""
    argv = sys.argv[1:] if argv is None else argv
    config_path = argv[0] if argv else "config.json"

    try:
        config = load_config(config_path)
    except FileNotFoundError:
        print(f"Error: Configuration file '{config_path}' not found.", file=sys.stderr)
        sys.exit(1)
    except (ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config['log_file'])
    logging.info("--- Starting Static Export ---")
    logging.info(f"Configuration loaded for site: {config['site_url']}")

    result = run_export(config)

    logging.info("--- Export Summary ---")
    logging.info(f"Final state: {result.state.value}")
    logging.info(f"Pages exported: {result.pages_exported}")
    logging.info(f"Assets downloaded: {result.assets_downloaded}")
    if not result.success:
        logging.error("Export failed. See the log above for details.")
        sys.exit(1)
    logging.info(f"Archive: {result.archive_path}")
    logging.info("--- Static Export Finished ---")
    sys.exit(0)


if __name__ == "__main__":
    main()
