# Overview: Outbound email through a bounded in-process queue drained by one Flask-Mail worker.

"""
Email Queue

WHY: Requests must not wait on SMTP. Messages are queued and a single worker
thread sends them with Flask-Mail inside an application context.

LIMITS:
- The queue is bounded (EMAIL_QUEUE_SIZE); a full queue raises EmailQueueFull
  instead of blocking the request
- The queue lives in memory; messages still queued when the process dies are lost
- A failed send is logged and the worker moves on to the next message
"""

import logging
import queue
import secrets
import threading
from dataclasses import dataclass

from flask import current_app, render_template
from flask_mail import Message

from ..errors import EmailQueueFull
from ..extensions import mail
from ..i18n import DEFAULT_LANGUAGE, translate

logger = logging.getLogger(__name__)

OTP_DIGITS = 6
OTP_TTL_MINUTES = 10

_STOP = object()


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str


class EmailQueue:
    def __init__(self, maxsize: int = 100, sender=None):
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._sender = sender
        self._worker: threading.Thread | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, to: str, subject: str, html: str) -> None:
        try:
            self._queue.put_nowait(OutgoingEmail(to=to, subject=subject, html=html))
        except queue.Full:
            logger.warning("Email queue full, dropping message to %s", to)
            raise EmailQueueFull()

    def _send(self, email: OutgoingEmail) -> None:
        if self._sender is not None:
            self._sender(email)
            return
        mail.send(Message(subject=email.subject, recipients=[email.to], html=email.html))

    def _run(self, app) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                with app.app_context():
                    self._send(item)
                logger.info("Email sent to %s", item.to)
            except Exception:
                logger.exception("Email to %s failed", getattr(item, "to", "?"))
            finally:
                self._queue.task_done()

    def start(self, app) -> threading.Thread:
        if self._worker is not None and self._worker.is_alive():
            return self._worker
        self._worker = threading.Thread(target=self._run, args=(app,), name="email-worker", daemon=True)
        self._worker.start()
        return self._worker

    def stop(self, timeout: float = 5.0) -> None:
        if self._worker is None:
            return
        self._queue.put(_STOP)
        self._worker.join(timeout)
        self._worker = None

    def join(self) -> None:
        """Block until every queued message has been processed."""
        self._queue.join()


def init_email(app) -> EmailQueue:
    email_queue = EmailQueue(app.config.get("EMAIL_QUEUE_SIZE", 100))
    app.extensions["email_queue"] = email_queue
    if app.config.get("EMAIL_WORKER_ENABLED", True):
        email_queue.start(app)
    return email_queue


def get_email_queue() -> EmailQueue:
    return current_app.extensions["email_queue"]


def generate_otp() -> str:
    return f"{secrets.randbelow(10 ** OTP_DIGITS):0{OTP_DIGITS}d}"


def render_otp_email(name: str, code: str, lang: str = DEFAULT_LANGUAGE) -> tuple[str, str]:
    """(subject, html) for a verification code email."""
    subject = translate("otp_subject", lang)
    html = render_template(
        "email/otp.html",
        name=name,
        code=code,
        subject=subject,
        ttl_minutes=OTP_TTL_MINUTES,
        lang=lang,
    )
    return subject, html
