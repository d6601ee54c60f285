# services/scheduling/notifications.py
import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from starlette.concurrency import run_in_threadpool

from services.class_management.models.teachers import Teacher
from shared import config

logger = logging.getLogger(__name__)


@dataclass
class NotificationFailure:
    teacher_id: int
    email: str
    error: str


@dataclass
class NotificationReport:
    emails_sent: int = 0
    total_teachers: int = 0
    skipped: int = 0
    failures: List[NotificationFailure] = field(default_factory=list)
    # set when dispatch as a whole failed before any mail went out
    error: Optional[str] = None


class SmtpMailer:
    def __init__(self, host, port=587, user=None, password=None, sender=None, use_tls=True):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.use_tls = use_tls

    def send(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(message)


class LogMailer:
    """Used when no SMTP server is configured."""

    def send(self, to: str, subject: str, body: str) -> None:
        logger.info("Mail to %s not sent (no SMTP_HOST configured): %s", to, subject)


def get_mailer():
    if config.SMTP_HOST:
        return SmtpMailer(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            user=config.SMTP_USER,
            password=config.SMTP_PASSWORD,
            sender=config.SMTP_SENDER,
            use_tls=config.SMTP_USE_TLS,
        )
    return LogMailer()


def build_message(teacher: Teacher, class_name: str, schedule_link: str):
    subject = f"Wechselplan {class_name}"
    body = (
        f"Hallo {teacher.full_name}!\n\n"
        f"Es wurde ein Wechselplan für Klasse {class_name} erstellt. "
        f"Du findest den Plan unter {schedule_link}.\n\n"
        "Viele Grüße,\nDas Wechselplan-Team"
    )
    return subject, body


async def notify_teachers(
    db: AsyncSession,
    teacher_ids: Sequence[int],
    class_name: str,
    schedule_link: str,
    mailer,
) -> NotificationReport:
    """Mail every listed teacher that has an address.

    Sending is best effort: a failed recipient is logged and reported, the
    remaining teachers are still mailed and nothing is raised.
    """
    if not teacher_ids:
        return NotificationReport()

    result = await db.execute(
        select(Teacher).where(Teacher.id.in_(list(teacher_ids))).order_by(Teacher.id)
    )
    teachers = result.scalars().all()

    report = NotificationReport(total_teachers=len(teachers))
    for teacher in teachers:
        if not teacher.email:
            report.skipped += 1
            continue

        subject, body = build_message(teacher, class_name, schedule_link)
        try:
            await run_in_threadpool(mailer.send, teacher.email, subject, body)
        except Exception as e:
            logger.warning("Failed to send email to %s", teacher.email, exc_info=True)
            report.failures.append(NotificationFailure(
                teacher_id=teacher.id,
                email=teacher.email,
                error=str(e),
            ))
            continue

        report.emails_sent += 1
        logger.info("Email sent successfully to %s", teacher.email)

    return report
