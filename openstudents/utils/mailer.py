from flask_mail import Message
from flask import current_app
from openstudents.extensions import mail


def _sender_address(sender):
    if isinstance(sender, (tuple, list)):
        return sender[1]
    return sender


def send_email(to, subject, body, html=None, attachments=None):
    """Generic email sender that never copies the sender address.

    ``attachments`` is an iterable of ``(filename, content_type, data)``
    tuples. Returns True once the message is handed to the relay, False when
    it was skipped; delivery errors propagate to the caller.
    """
    sender = current_app.config.get("MAIL_DEFAULT_SENDER")
    recipients = [to] if isinstance(to, str) else list(to)

    if _sender_address(sender) in recipients:
        current_app.logger.info(f"Skipped sending email to sender address: {_sender_address(sender)}")
        return False

    msg = Message(
        subject=subject,
        recipients=recipients,
        sender=sender,
        reply_to=current_app.config.get("MAIL_REPLY_TO"),
    )
    msg.body = body
    if html:
        msg.html = html

    for filename, content_type, data in attachments or ():
        msg.attach(filename, content_type, data)

    mail.send(msg)
    current_app.logger.info(f"Email sent successfully to {', '.join(recipients)}")
    return True
