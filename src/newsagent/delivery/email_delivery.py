"""
Email Delivery over SMTP
"""
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from newsagent.delivery.base import Mailer


class EmailDelivery(Mailer):
    name = "email"

    def __init__(
        self,
        *,
        smtp_host: str,
        smtp_port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.timeout = timeout

    @staticmethod
    def build_message(
        *,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        sender: str,
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = sender
        msg["To"] = to
        msg["Subject"] = subject

        # Plain text first; HTML as the preferred alternative
        msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")
        return msg

    async def send(
        self,
        *,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        sender: str,
    ) -> None:
        msg = self.build_message(
            to=to,
            subject=subject,
            html_body=html_body,
            text_body=text_body,
            sender=sender,
        )

        await aiosmtplib.send(
            msg,
            hostname=self.smtp_host,
            port=self.smtp_port,
            username=self.username,
            password=self.password,
            start_tls=True,
            timeout=self.timeout,
        )
