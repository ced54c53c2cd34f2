"""Email service for invitation and onboarding messages.

Messages are rendered by plain functions and handed to ``EmailService`` for
delivery, so the wording can be checked without an SMTP server.
"""

import html
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from fieldops.config import Settings, get_settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10

ROLE_LABELS = {
    "ADMIN": "an administrator",
    "CONSULTANT": "a consultant",
    "CONTRACTOR": "a contractor",
    "STAFF": "a staff member",
}


@dataclass(frozen=True)
class OutgoingEmail:
    """A rendered message, ready for delivery."""

    subject: str
    text: str
    html: str


def _layout(app_name: str, heading: str, paragraphs: list[str]) -> str:
    body = "\n".join(f"<p>{p}</p>" for p in paragraphs)
    return (
        '<html><body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">'
        f"<h2>{heading}</h2>\n{body}\n"
        f"<p>The {html.escape(app_name)} team</p>"
        "</body></html>"
    )


def render_invitation(
    app_name: str,
    role: str,
    inviter_name: str,
    acceptance_url: str,
    project_name: str | None = None,
) -> OutgoingEmail:
    """Render the invitation carrying the one-time acceptance link.

    Args:
        app_name: Product name shown to the invitee.
        role: Role value the invitee is invited as.
        inviter_name: Display name of the issuer.
        acceptance_url: Full acceptance URL.
        project_name: Project the invitee will join, if the invitation is scoped.

    Returns:
        OutgoingEmail: Subject with text and HTML bodies.
    """
    role_label = ROLE_LABELS.get(role, role.lower())
    scope = f" on {project_name}" if project_name else ""
    summary = f"{inviter_name} has invited you to join {app_name} as {role_label}{scope}."
    text = (
        f"{summary}\n\n"
        f"Set up your account here:\n{acceptance_url}\n\n"
        "The link works once. If you weren't expecting this invitation, ignore this email."
    )
    link = html.escape(acceptance_url, quote=True)
    body = _layout(
        app_name,
        f"You've been invited to {html.escape(app_name)}",
        [
            html.escape(summary),
            f'<a href="{link}" style="background-color: #1f6f5c; color: white; '
            'padding: 12px 24px; text-decoration: none; border-radius: 6px; '
            'display: inline-block;">Set up my account</a>',
            f'<span style="word-break: break-all;">{link}</span>',
            "The link works once. If you weren't expecting this invitation, ignore this email.",
        ],
    )
    return OutgoingEmail(
        subject=f"{app_name}: invitation to join as {role_label}", text=text, html=body
    )


def render_welcome(app_name: str, full_name: str, role: str, login_url: str) -> OutgoingEmail:
    role_label = ROLE_LABELS.get(role, role.lower())
    text = (
        f"Hello {full_name},\n\n"
        f"Your {app_name} account is ready and you are registered as {role_label}.\n"
        f"Sign in at {login_url}"
    )
    body = _layout(
        app_name,
        f"Welcome, {html.escape(full_name)}",
        [
            f"Your {html.escape(app_name)} account is ready and you are registered "
            f"as {role_label}.",
            f'Sign in at <a href="{html.escape(login_url, quote=True)}">'
            f"{html.escape(login_url)}</a>.",
        ],
    )
    return OutgoingEmail(subject=f"Your {app_name} account is ready", text=text, html=body)


class EmailService:
    """Delivers onboarding email over SMTP.

    Attributes:
        settings: Application settings containing SMTP configuration.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def _connect(self) -> smtplib.SMTP:
        """Open an authenticated SMTP connection.

        Implicit TLS when ``smtp_use_tls`` is set (port 465), STARTTLS otherwise.

        Raises:
            smtplib.SMTPException: If the handshake or login fails.
            OSError: If the server cannot be reached.
        """
        settings = self.settings
        context = ssl.create_default_context()
        if settings.smtp_use_tls:
            server = smtplib.SMTP_SSL(
                settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS, context=context
            )
        else:
            server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS)
            server.starttls(context=context)

        if settings.smtp_user and settings.smtp_password:
            server.login(settings.smtp_user, settings.smtp_password)
        return server

    def deliver(self, to_email: str, message: OutgoingEmail) -> bool:
        """Send a rendered message.

        Args:
            to_email: Recipient address.
            message: Rendered message.

        Returns:
            bool: True if the server accepted the message.
        """
        mime = MIMEMultipart("alternative")
        mime["Subject"] = message.subject
        mime["From"] = f"{self.settings.smtp_from_name} <{self.settings.smtp_from_email}>"
        mime["To"] = to_email
        mime.attach(MIMEText(message.text, "plain"))
        mime.attach(MIMEText(message.html, "html"))

        try:
            with self._connect() as server:
                server.sendmail(self.settings.smtp_from_email, [to_email], mime.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Could not deliver '{message.subject}' to {to_email}: {e}")
            return False

        logger.info(f"Delivered '{message.subject}' to {to_email}")
        return True

    def send_invitation_email(
        self,
        to_email: str,
        role: str,
        inviter_name: str,
        acceptance_url: str,
        project_name: str | None = None,
    ) -> bool:
        message = render_invitation(
            self.settings.app_name, role, inviter_name, acceptance_url, project_name
        )
        return self.deliver(to_email, message)

    def send_welcome_email(self, to_email: str, full_name: str, role: str) -> bool:
        login_url = f"{self.settings.public_base_url.rstrip('/')}/login"
        return self.deliver(
            to_email, render_welcome(self.settings.app_name, full_name, role, login_url)
        )


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get the email service singleton.

    Returns:
        EmailService: The email service instance.
    """
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
