"""
Verification codes for newly added users.

A code is generated, stored on the user with an expiry, and handed to a
VerificationCodeSender for out-of-band delivery. Callers depend only on the
code being stored and delivery being attempted.
"""
import secrets
import smtplib
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from starlette.concurrency import run_in_threadpool

from app.core import config
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


def generate_verification_code() -> str:
    """Four-digit numeric code, 1000-9999."""
    return str(1000 + secrets.randbelow(9000))


def issue_verification_code(user: User) -> str:
    """
    Set a fresh code on user, valid for OTP_TTL_MINUTES, and return it.

    Nothing is committed here; the code is persisted with the caller's unit of work.
    """
    code = generate_verification_code()
    user.otp = code
    user.otp_expires_at = datetime.now(timezone.utc) + timedelta(minutes=config.OTP_TTL_MINUTES)
    return code


class VerificationCodeSender(ABC):
    """Delivers a verification code to an email address."""

    @abstractmethod
    async def send(self, email: str, code: str) -> None:
        pass


class SmtpVerificationCodeSender(VerificationCodeSender):
    """Send codes through the SMTP server configured in app.core.config."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        from_email: str = config.MAIL_FROM,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email

    def build_message(self, email: str, code: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = "Your OTP Code"
        msg["From"] = self.from_email
        msg["To"] = email
        msg.set_content(f"Your OTP is {code}")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=30) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def send(self, email: str, code: str) -> None:
        await run_in_threadpool(self._send_sync, self.build_message(email, code))


class LoggingVerificationCodeSender(VerificationCodeSender):
    """Fallback when SMTP is not configured: record the attempt in the log."""

    async def send(self, email: str, code: str) -> None:
        log.warning(f"SMTP not configured; verification code for {email} was not emailed")


def get_code_sender() -> VerificationCodeSender:
    """FastAPI dependency returning the configured sender."""
    if config.SMTP_HOST:
        return SmtpVerificationCodeSender(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USERNAME,
            password=config.SMTP_PASSWORD,
            use_tls=config.SMTP_USE_TLS,
        )
    return LoggingVerificationCodeSender()


async def dispatch_verification_code(sender: VerificationCodeSender, email: str, code: str) -> None:
    """
    Attempt delivery. Runs as a background task after the response is sent,
    so delivery failures are logged rather than raised.
    """
    try:
        await sender.send(email, code)
        log.info(f"Verification code dispatched to {email}")
    except (smtplib.SMTPException, OSError):
        log.exception(f"Failed to dispatch verification code to {email}")
