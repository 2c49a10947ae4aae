"""
Email Service for Aaghaaz Admin
===============================
Outgoing mail over SMTP:
- ID card (PDF attachment) after student registration
- Welcome message with portal credentials

Delivery failures are logged and reported as ``False``; callers decide
whether that should fail the request.
"""

import aiosmtplib
import html
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, List, Tuple

from aaghaaz.core.config import settings
from aaghaaz.core.logging_config import logger

# (filename, content, mime subtype)
Attachment = Tuple[str, bytes, str]


class EmailService:
    """Async SMTP email service"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)

    def build_message(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> MIMEMultipart:
        message = MIMEMultipart("mixed")
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message["Subject"] = subject

        body = MIMEMultipart("alternative")
        if text_content:
            body.attach(MIMEText(text_content, "plain"))
        body.attach(MIMEText(html_content, "html"))
        message.attach(body)

        for filename, content, subtype in attachments or []:
            part = MIMEApplication(content, _subtype=subtype)
            part.add_header("Content-Disposition", "attachment", filename=filename)
            message.attach(part)

        return message

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning("[Email] Email service not configured, skipping email send")
            return False

        message = self.build_message(to_email, subject, html_content, text_content, attachments)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                use_tls=self.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
        return True

    async def send_id_card(
        self,
        to_email: str,
        student_name: str,
        roll_id: str,
        pdf_bytes: bytes,
        filename: Optional[str] = None,
    ) -> bool:
        subject = f"Your {self.from_name} ID Card"
        safe_name = html.escape(student_name)
        html_content = f"""
        <p>Dear {safe_name},</p>
        <p>Your student ID card is attached. Your Roll ID is <strong>{roll_id}</strong>.</p>
        <p>Please keep it with you when visiting the campus.</p>
        <p>Regards,<br>{self.from_name}</p>
        """
        text_content = (
            f"Dear {student_name},\n\n"
            f"Your student ID card is attached. Your Roll ID is {roll_id}.\n\n"
            f"Regards,\n{self.from_name}"
        )
        return await self.send_email(
            to_email,
            subject,
            html_content,
            text_content,
            attachments=[(filename or f"id-card-{roll_id}.pdf", pdf_bytes, "pdf")],
        )

    async def send_welcome_email(self, to_email: str, student_name: str, roll_id: str) -> bool:
        subject = f"Welcome to {self.from_name}"
        safe_name = html.escape(student_name)
        html_content = f"""
        <p>Dear {safe_name},</p>
        <p>Your registration is complete. Your Roll ID is <strong>{roll_id}</strong>.</p>
        <p>You can sign in to the student portal with this email address once
        your enrollment has been confirmed by the administration.</p>
        <p>Regards,<br>{self.from_name}</p>
        """
        return await self.send_email(to_email, subject, html_content)


email_service = EmailService()
