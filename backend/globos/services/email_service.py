"""
Email Service for verification and password-recovery codes

Delivery is best-effort: every sender returns a result dict
({'success': True, 'messageId': ...} or {'success': False, 'error': ...})
instead of raising, and callers surface it as a non-fatal detail.
"""

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

from flask import current_app

SHOP_NAME = "Globos y Fiesta"


def _code_body(title: str, nombre: str, codigo: str, intro: str) -> str:
    return f"""
    <html>
    <body style="font-family: Arial, sans-serif;">
        <div style="background: #ec4899; color: white; padding: 20px; text-align: center;">
            <h1>{title}</h1>
        </div>
        <div style="padding: 20px;">
            <p>Hola {nombre},</p>
            <p>{intro}</p>
            <p style="font-size: 32px; font-weight: bold; letter-spacing: 8px; text-align: center;">{codigo}</p>
            <p>Este código expira en 15 minutos.</p>
            <p>Si no solicitaste este código, ignora este mensaje.</p>
        </div>
        <div style="background: #F3F4F6; padding: 15px; text-align: center; font-size: 0.9em; color: #6B7280;">
            {SHOP_NAME}
        </div>
    </body>
    </html>
    """


def send_email(recipient: str, subject: str, html_body: str) -> dict:
    """Send one HTML email over SMTP using the MAIL_* settings."""
    config = current_app.config

    if not config.get("MAIL_ENABLED", True):
        current_app.logger.info("Email disabled; skipping message to %s", recipient)
        return {'success': False, 'error': 'Email sending disabled'}

    username = config.get("MAIL_USERNAME")
    password = config.get("MAIL_PASSWORD")
    if not all([username, password]):
        current_app.logger.warning("Email credentials not configured; message to %s not sent", recipient)
        return {'success': False, 'error': 'Email credentials not configured'}

    sender = config.get("MAIL_DEFAULT_SENDER") or username

    msg = MIMEMultipart()
    msg['From'] = f"{SHOP_NAME} <{sender}>"
    msg['To'] = recipient
    msg['Subject'] = subject
    msg['Message-ID'] = make_msgid(domain=sender.split("@")[-1])
    msg.attach(MIMEText(html_body, 'html', 'utf-8'))

    try:
        with smtplib.SMTP(config.get("MAIL_SERVER"), config.get("MAIL_PORT"), timeout=15) as server:
            if config.get("MAIL_USE_TLS", True):
                server.starttls()
            server.login(username, password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        current_app.logger.warning("Failed to send email to %s: %s", recipient, exc)
        return {'success': False, 'error': str(exc)}

    return {'success': True, 'messageId': msg['Message-ID']}


def send_verification_email(email: str, nombre: str, codigo: str) -> dict:
    body = _code_body(
        "Verifica tu email",
        nombre,
        codigo,
        "Gracias por registrarte. Usa este código para verificar tu cuenta:",
    )
    return send_email(email, f"Verifica tu email - {SHOP_NAME}", body)


def send_recovery_email(email: str, nombre: str, codigo: str) -> dict:
    body = _code_body(
        "Recuperar contraseña",
        nombre,
        codigo,
        "Recibimos una solicitud para restablecer tu contraseña. Usa este código:",
    )
    return send_email(email, f"Recuperar contraseña - {SHOP_NAME}", body)
