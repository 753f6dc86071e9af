import base64
import random
import string
import time
from flask import current_app, render_template
from openstudents.utils.mailer import send_email

CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 850

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_certificate_number():
    suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=6))
    return f"TOS-CERT-{int(time.time() * 1000)}-{suffix}"


def format_completion_date(moment):
    # e.g. "March 5, 2025"
    return f"{moment:%B} {moment.day}, {moment.year}"


def render_certificate_svg(student_name, program_name, completion_date, certificate_number):
    return render_template(
        "certificates/certificate.svg",
        width=CANVAS_WIDTH,
        height=CANVAS_HEIGHT,
        student_name=student_name,
        program_name=program_name,
        completion_date=completion_date,
        certificate_number=certificate_number,
    )


def svg_data_uri(svg):
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


def decode_data_uri(uri):
    _, _, payload = uri.partition(",")
    return base64.b64decode(payload)


def send_certificate_email(to, student_name, program_name, certificate_url):
    """Email the certificate; failures are reported, never raised."""
    if not to:
        current_app.logger.warning("No email address on file, certificate not sent")
        return False

    context = {"student_name": student_name, "program_name": program_name}
    try:
        return send_email(
            to=to,
            subject=f"Your Certificate of Completion - {program_name}",
            body=render_template("emails/certificate.txt", **context),
            html=render_template("emails/certificate.html", **context),
            attachments=[("certificate.svg", "image/svg+xml", decode_data_uri(certificate_url))],
        )
    except Exception as e:
        current_app.logger.error(f"Failed to send certificate email to {to}: {e}")
        return False
