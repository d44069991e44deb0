"""
Email Service for Siam POS
Sends password reset, email verification and order confirmation messages
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from siampos.core.config import Settings, settings

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending notifications"""

    def __init__(
        self,
        smtp_host: str = "",
        smtp_port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        from_email: str = "noreply@siampos.local",
        from_name: str = "Siam POS",
        frontend_url: str = "http://localhost:5173",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email
        self.from_name = from_name
        self.frontend_url = frontend_url.rstrip("/")

    @classmethod
    def from_settings(cls, config: Settings) -> "EmailService":
        return cls(
            smtp_host=config.smtp_host,
            smtp_port=config.smtp_port,
            username=config.smtp_user,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            from_email=config.smtp_from_email,
            from_name=config.smtp_from_name,
            frontend_url=config.frontend_url,
        )

    @property
    def configured(self) -> bool:
        return bool(self.smtp_host)

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> bool:
        """Send a plain-text message, with an HTML alternative when given.

        Returns False instead of raising when SMTP is unconfigured or fails,
        so callers never depend on mail delivery.
        """
        if not self.configured:
            logger.warning(f"Email not configured, would send to {to}: {subject}")
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = to

            msg.attach(MIMEText(body, 'plain', 'utf-8'))
            if html_body:
                msg.attach(MIMEText(html_body, 'html', 'utf-8'))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                if self.use_tls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.sendmail(self.from_email, to, msg.as_string())

            logger.info(f"Email sent to {to}: {subject}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

    def send_password_reset(self, to: str, token: str) -> bool:
        link = f"{self.frontend_url}/reset-password?token={token}"
        subject = "รีเซ็ตรหัสผ่าน / Reset your password"
        body = f"""
We received a request to reset the password for your Siam POS account.

Open the link below to choose a new password. The link expires in 1 hour.

{link}

If you did not request a password reset, you can ignore this email.
"""
        html_body = f"""
    <p>We received a request to reset the password for your Siam POS account.</p>
    <p><a href="{link}">Reset password</a> (expires in 1 hour)</p>
    <p style="color: #666; font-size: 11px;">If you did not request a password reset, you can ignore this email.</p>
    """
        return self.send(to=to, subject=subject, body=body, html_body=html_body)

    def send_email_verification(self, to: str, token: str) -> bool:
        link = f"{self.frontend_url}/verify-email?token={token}"
        subject = "ยืนยันอีเมล / Verify your email"
        body = f"""
Welcome to Siam POS.

Please confirm your email address by opening the link below. The link expires in 24 hours.

{link}
"""
        html_body = f"""
    <p>Welcome to Siam POS.</p>
    <p><a href="{link}">Verify email address</a> (expires in 24 hours)</p>
    """
        return self.send(to=to, subject=subject, body=body, html_body=html_body)

    def send_order_confirmation(self, to: str, order_number: str, total, items: list) -> bool:
        """Send a receipt-style summary; ``items`` are (name, quantity, line_total) tuples."""
        subject = f"ยืนยันคำสั่งซื้อ / Order {order_number}"
        lines = "\n".join(f"- {name} x{quantity}: ฿{line_total:,.2f}" for name, quantity, line_total in items)
        body = f"""
Thank you for your order.

Order: {order_number}

{lines}

Total: ฿{total:,.2f}
"""
        return self.send(to=to, subject=subject, body=body)


# Global email service instance, built from settings at import
_email_service = EmailService.from_settings(settings)


def get_email_service() -> EmailService:
    """FastAPI dependency returning the process-wide email service."""
    return _email_service
