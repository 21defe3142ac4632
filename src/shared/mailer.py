import requests

from shared.errors import Internal

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"
SEND_TIMEOUT_SECONDS = 15

OTP_SUBJECT = "UniDate – Your verification code"


def render_otp_html(code, ttl_minutes):
    return f"<p>Your code is: <strong>{code}</strong>. It expires in {ttl_minutes} minutes.</p>"


def send_email(settings, to_email, subject, html, text=None):
    """
    Sends one transactional email through the Brevo API.

    Raises Internal when the request fails or Brevo answers with a non-2xx
    status.
    """
    payload = {
        "sender": {"name": settings.email_sender_name, "email": settings.email_sender_address},
        "to": [{"email": to_email}],
        "subject": subject,
        "htmlContent": html,
    }
    if text:
        payload["textContent"] = text

    try:
        resp = requests.post(
            BREVO_SEND_URL,
            headers={
                "accept": "application/json",
                "api-key": settings.brevo_api_key,
                "content-type": "application/json",
            },
            json=payload,
            timeout=SEND_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise Internal("Failed to send email", detail=str(e))
    if not 200 <= resp.status_code < 300:
        raise Internal("Failed to send email", detail=f"Brevo send failed ({resp.status_code})")
    return resp


def send_otp_email(settings, to_email, code):
    ttl_minutes = settings.otp_ttl_seconds // 60
    return send_email(
        settings,
        to_email=to_email,
        subject=OTP_SUBJECT,
        html=render_otp_html(code, ttl_minutes),
        text=f"Your code is {code}. It expires in {ttl_minutes} minutes.",
    )
