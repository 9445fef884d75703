"""Email transport with layout rendering and SMTP delivery"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List, Optional
import logging
import re
from pathlib import Path
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from app.core.config import settings
from app.core.exceptions import NotificationDeliveryError

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"<[^>]+>")

class EmailService:
    """SMTP email transport"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.SMTP_FROM_EMAIL
        self.from_name = settings.SMTP_FROM_NAME

        # Setup Jinja2 for the email layout
        template_dir = Path(__file__).parent.parent / "templates" / "emails"
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(['html', 'xml'])
        )

    def build_message(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        cc: Optional[List[str]] = None,
        reply_to: Optional[str] = None
    ) -> MIMEMultipart:
        """Create a text + optional HTML message"""
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email

        if cc:
            msg['Cc'] = ', '.join(cc)
        if reply_to:
            msg['Reply-To'] = reply_to

        msg.attach(MIMEText(body, 'plain', 'utf-8'))
        if html_body:
            msg.attach(MIMEText(html_body, 'html', 'utf-8'))

        return msg

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        cc: Optional[List[str]] = None,
        bcc: Optional[List[str]] = None,
        reply_to: Optional[str] = None
    ) -> None:
        """Send email; raises NotificationDeliveryError on transport failure"""
        msg = self.build_message(to_email, subject, body, html_body, cc, reply_to)

        recipients = [to_email]
        if cc:
            recipients.extend(cc)
        if bcc:
            recipients.extend(bcc)

        try:
            await aiosmtplib.send(
                msg,
                recipients=recipients,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=settings.SMTP_START_TLS,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}")
            raise NotificationDeliveryError("EMAIL", to_email, str(e)) from e

        logger.info(f"Email sent successfully to {to_email}")

    async def send_html_email(self, to_email: str, subject: str, html_body: str) -> None:
        """Send a rendered notification body inside the standard layout"""
        template = self.env.get_template("notification.html")
        html = template.render(
            subject=subject,
            # Body comes from admin-managed templates and may carry markup
            body=Markup(html_body),
            app_name=settings.APP_NAME,
        )

        await self.send_email(
            to_email=to_email,
            subject=subject,
            body=self._generate_text_version(html_body),
            html_body=html
        )

    def _generate_text_version(self, html_body: str) -> str:
        """Plain-text alternative for clients without HTML"""
        text = re.sub(r"<br\s*/?>|</p>", "\n", html_body, flags=re.IGNORECASE)
        return TAG_PATTERN.sub("", text).strip()
