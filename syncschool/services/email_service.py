import asyncio
import html
from typing import List, Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from pydantic import BaseModel, EmailStr

from syncschool.core.config import get_email_settings
from syncschool.core.logging import logger


def render_receipt_html(
    school_name: str,
    student_name: str,
    transaction_id: str,
    amount: float,
    method: str,
    paid_on: str,
) -> str:
    school_name = html.escape(school_name)
    student_name = html.escape(student_name)
    return f"""
    <html>
    <body>
        <h2>{school_name}: Payment Receipt</h2>
        <p>We have received a payment for <strong>{student_name}</strong>.</p>
        <table>
            <tr><td>Transaction</td><td>{html.escape(transaction_id)}</td></tr>
            <tr><td>Amount</td><td>{amount:,.2f}</td></tr>
            <tr><td>Method</td><td>{method.replace("_", " ").title()}</td></tr>
            <tr><td>Date</td><td>{html.escape(str(paid_on))}</td></tr>
        </table>
        <p>Thank you.</p>
    </body>
    </html>
    """


class EmailConfig(BaseModel):
    """SMTP settings for outgoing school mail"""
    MAIL_USERNAME: str
    MAIL_PASSWORD: str
    MAIL_FROM: EmailStr
    MAIL_PORT: int = 465
    MAIL_SERVER: str = "smtp.gmail.com"
    MAIL_FROM_NAME: str = "Sync School Management"
    MAIL_STARTTLS: bool = False
    MAIL_SSL_TLS: bool = True
    TIMEOUT: int = 10

    @classmethod
    def from_settings(cls) -> Optional["EmailConfig"]:
        values = get_email_settings()
        if not values["enabled"]:
            return None
        missing = [k for k in ("username", "password", "from_email") if not values[k]]
        if missing:
            raise ValueError(f"Email configuration is incomplete. Missing: {', '.join(missing)}")
        return cls(
            MAIL_USERNAME=values["username"],
            MAIL_PASSWORD=values["password"],
            MAIL_FROM=values["from_email"],
            MAIL_PORT=values["port"],
            MAIL_SERVER=values["server"],
            MAIL_FROM_NAME=values["from_name"],
            MAIL_STARTTLS=values["starttls"],
            MAIL_SSL_TLS=values["ssl_tls"],
        )


class EmailService:
    """
    Sends receipts through FastMail. With no configuration the service is
    disabled and every send reports False without touching the network.
    """

    def __init__(self, config: Optional[EmailConfig] = None):
        self.fastmail: Optional[FastMail] = None
        if config is None:
            return

        conf = ConnectionConfig(
            MAIL_USERNAME=config.MAIL_USERNAME,
            MAIL_PASSWORD=config.MAIL_PASSWORD,
            MAIL_FROM=config.MAIL_FROM,
            MAIL_PORT=config.MAIL_PORT,
            MAIL_SERVER=config.MAIL_SERVER,
            MAIL_STARTTLS=config.MAIL_STARTTLS,
            MAIL_SSL_TLS=config.MAIL_SSL_TLS,
            USE_CREDENTIALS=True,
            VALIDATE_CERTS=True,
            MAIL_FROM_NAME=config.MAIL_FROM_NAME,
            TIMEOUT=config.TIMEOUT,
        )
        self.fastmail = FastMail(conf)
        logger.info("FastMail client initialized")

    @property
    def enabled(self) -> bool:
        return self.fastmail is not None

    async def send_email_with_retry(
        self,
        recipients: List[str],
        subject: str,
        body: str,
        max_retries: int = 3,
    ) -> bool:
        if not self.enabled:
            logger.debug(f"Email disabled; not sending '{subject}'")
            return False
        if not recipients or not subject or not body:
            logger.warning("Invalid email parameters")
            return False

        message = MessageSchema(
            subject=subject,
            recipients=recipients,
            body=body,
            subtype=MessageType.html,
        )
        for attempt in range(max_retries):
            try:
                await self.fastmail.send_message(message)
                logger.info(f"Email sent to {', '.join(recipients)}")
                return True
            except Exception as e:
                logger.error(f"Attempt {attempt + 1}/{max_retries} to send '{subject}' failed: {type(e).__name__}: {e}")
                if attempt < max_retries - 1:
                    await asyncio.sleep(2 ** attempt)
        return False

    async def send_payment_receipt(
        self,
        recipient: str,
        school_name: str,
        student_name: str,
        transaction_id: str,
        amount: float,
        method: str,
        paid_on: str,
    ) -> bool:
        body = render_receipt_html(school_name, student_name, transaction_id, amount, method, paid_on)
        return await self.send_email_with_retry([recipient], f"Payment receipt {transaction_id}", body)
