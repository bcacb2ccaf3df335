# Server-side mailer written into exports that convert forms.
# The PHP is shipped as text only; nothing here runs it.

SENDMAIL_PHP = """<?php
/**
 * Form handler for the exported static site.
 * Sends every POSTed field to the configured recipient with PHP's mail().
 */
$config_included = @include 'mailer-config.php';
if (!$config_included) {
    error_log('PHP Mailer ERROR: mailer-config.php could not be included.');
    die('Server configuration error (config include). Please contact the site administrator.');
}

if (!isset($recipient_email) || empty($recipient_email)) {
    error_log('PHP Mailer ERROR: Recipient email is not configured in mailer-config.php.');
    die('Server configuration error (recipient). Please contact the site administrator.');
}

if ($_SERVER['REQUEST_METHOD'] !== 'POST') {
    die('Invalid request method.');
}

$form_data = $_POST;
$email_body = "Form Submission Details:\\n";
$form_location = 'Unknown Page';
$sender_email = null;

unset($form_data['recipient_email'], $form_data['default_subject'], $form_data['default_from_address']);

if (isset($form_data['_form_location'])) {
    $form_location = htmlspecialchars($form_data['_form_location'], ENT_QUOTES, 'UTF-8');
    unset($form_data['_form_location']);
    $email_body .= "Submitted From: " . $form_location . "\\n";
}
$email_body .= "--------------------------\\n\\n";

foreach ($form_data as $field_name => $field_value) {
    $value = is_array($field_value) ? implode(', ', $field_value) : $field_value;
    $email_body .= htmlspecialchars($field_name, ENT_QUOTES, 'UTF-8') . ": " . htmlspecialchars($value, ENT_QUOTES, 'UTF-8') . "\\n";
    if ($sender_email === null && !is_array($field_value)
        && in_array(strtolower($field_name), ['email', 'your-email', 'sender_email', 'email_address'])
        && filter_var($field_value, FILTER_VALIDATE_EMAIL)) {
        $sender_email = $field_value;
    }
}

$subject = isset($default_subject) ? $default_subject : 'Form Submission from ' . $form_location;
$from_address = isset($default_from_address) ? $default_from_address : null;
if (!$from_address) {
    $from_address = $sender_email ? $sender_email : 'noreply@' . (isset($_SERVER['SERVER_NAME']) ? $_SERVER['SERVER_NAME'] : 'example.com');
}
$headers = "From: " . $from_address . "\\r\\n";
$headers .= "Reply-To: " . ($sender_email ? $sender_email : $from_address) . "\\r\\n";
$headers .= "Content-Type: text/plain; charset=UTF-8\\r\\n";

$mail_sent = mail($recipient_email, $subject, $email_body, $headers);

$referer = isset($_SERVER['HTTP_REFERER']) ? $_SERVER['HTTP_REFERER'] : null;
$redirect_url = $referer ? strtok($referer, '?') : 'index.html';
if (!$mail_sent) {
    error_log('PHP Mailer ERROR: mail() failed. Redirecting to ' . $redirect_url . '?status=error');
}
header('Location: ' . $redirect_url . ($mail_sent ? '?status=success' : '?status=error'));
exit;
"""


def php_string_literal(value):
    """Quotes a value as a PHP single-quoted string."""
    return "'" + value.replace('\\', '\\\\').replace("'", "\\'") + "'"


def render_mailer_config(recipient_email):
    return (
        "<?php\n"
        "/**\n"
        " * Mailer configuration, generated at export time.\n"
        " */\n"
        f"$recipient_email = {php_string_literal(recipient_email)};\n"
        "\n"
        "// Optional: a fixed subject line and From address.\n"
        "// $default_subject = 'Website Form Submission';\n"
        "// $default_from_address = 'noreply@yourdomain.com';\n"
    )
