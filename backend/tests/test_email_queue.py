# Overview: Pytest coverage for the outbound email queue and email OTP verification.

import re
from datetime import timedelta

import pytest

from pos.errors import EmailQueueFull, InvalidInput
from pos.extensions import db
from pos.models import UserOtp, WriteContext
from pos.services import auth_service
from pos.services.email_service import EmailQueue, generate_otp, render_otp_email
from pos.time_utils import utcnow

CODE_PATTERN = re.compile(r">(\d{6})</p>")


class TestEmailQueue:

    def test_full_queue_raises(self):
        """Without a worker the second message has nowhere to go."""
        email_queue = EmailQueue(maxsize=1, sender=lambda email: None)
        email_queue.enqueue("a@example.test", "one", "<p>1</p>")
        with pytest.raises(EmailQueueFull):
            email_queue.enqueue("b@example.test", "two", "<p>2</p>")
        assert email_queue.pending == 1

    def test_worker_sends_in_order(self, app):
        sent = []
        email_queue = EmailQueue(maxsize=10, sender=sent.append)
        email_queue.start(app)
        try:
            email_queue.enqueue("a@example.test", "one", "<p>1</p>")
            email_queue.enqueue("b@example.test", "two", "<p>2</p>")
            email_queue.join()
        finally:
            email_queue.stop()
        assert [email.to for email in sent] == ["a@example.test", "b@example.test"]

    def test_failed_send_does_not_stop_worker(self, app):
        sent = []

        def flaky(email):
            if email.subject == "boom":
                raise ConnectionError("smtp down")
            sent.append(email)

        email_queue = EmailQueue(maxsize=10, sender=flaky)
        email_queue.start(app)
        try:
            email_queue.enqueue("a@example.test", "boom", "<p>x</p>")
            email_queue.enqueue("b@example.test", "fine", "<p>y</p>")
            email_queue.join()
        finally:
            email_queue.stop()
        assert [email.to for email in sent] == ["b@example.test"]

    def test_sender_runs_in_app_context(self, app):
        """Flask-Mail needs the app; the worker pushes a context per message."""
        from flask import current_app

        seen = []
        email_queue = EmailQueue(sender=lambda email: seen.append(current_app.name))
        email_queue.start(app)
        try:
            email_queue.enqueue("a@example.test", "ctx", "<p>ctx</p>")
            email_queue.join()
        finally:
            email_queue.stop()
        assert seen == [app.name]

    def test_start_is_idempotent(self, app):
        email_queue = EmailQueue(sender=lambda email: None)
        first = email_queue.start(app)
        try:
            assert email_queue.start(app) is first
            assert first.is_alive()
        finally:
            email_queue.stop()
        assert not first.is_alive()


class TestOtpRendering:

    def test_generate_otp_format(self):
        codes = {generate_otp() for _ in range(50)}
        assert all(len(code) == 6 and code.isdigit() for code in codes)
        assert len(codes) > 1

    def test_indonesian_email(self, app):
        subject, html = render_otp_email("Budi", "123456", "id")
        assert subject == "Kode verifikasi Anda"
        assert "Halo Budi" in html
        assert CODE_PATTERN.search(html).group(1) == "123456"

    def test_english_email(self, app):
        subject, html = render_otp_email("Budi", "654321")
        assert subject == "Your verification code"
        assert "10 minutes" in html


@pytest.fixture
def outbox(app):
    """Install a queue whose worker records messages instead of using SMTP."""
    sent = []
    original = app.extensions["email_queue"]
    email_queue = EmailQueue(sender=sent.append)
    email_queue.start(app)
    app.extensions["email_queue"] = email_queue

    def _drain():
        email_queue.join()
        return sent

    yield _drain
    email_queue.stop()
    app.extensions["email_queue"] = original


def latest_code(sent) -> str:
    return CODE_PATTERN.search(sent[-1].html).group(1)


class TestEmailVerification:

    def test_request_and_verify(self, owner_a, outbox):
        auth_service.request_email_otp(owner_a)
        sent = outbox()
        assert len(sent) == 1
        assert sent[0].to == owner_a.email

        user = auth_service.verify_email_otp(owner_a, latest_code(sent))
        assert user.email_verified_at is not None

    def test_code_single_use(self, owner_a, outbox):
        auth_service.request_email_otp(owner_a)
        code = latest_code(outbox())
        auth_service.verify_email_otp(owner_a, code)
        with pytest.raises(InvalidInput):
            auth_service.verify_email_otp(owner_a, code)

    def test_new_request_retires_old_code(self, owner_a, outbox):
        auth_service.request_email_otp(owner_a)
        first = latest_code(outbox())
        auth_service.request_email_otp(owner_a)
        second = latest_code(outbox())
        if first != second:
            with pytest.raises(InvalidInput):
                auth_service.verify_email_otp(owner_a, first)
        auth_service.verify_email_otp(owner_a, second)

    def test_wrong_code(self, owner_a, outbox):
        auth_service.request_email_otp(owner_a)
        code = latest_code(outbox())
        wrong = f"{(int(code) + 1) % 1000000:06d}"
        with pytest.raises(InvalidInput):
            auth_service.verify_email_otp(owner_a, wrong)

    def test_expired_code(self, owner_a, outbox):
        auth_service.request_email_otp(owner_a)
        code = latest_code(outbox())

        otp = db.session.query(UserOtp).filter_by(user_id=owner_a.id, deleted_at=None).one()
        otp.expires_at = utcnow() - timedelta(seconds=1)
        WriteContext(actor_id=owner_a.id).touch(otp)
        db.session.commit()

        with pytest.raises(InvalidInput):
            auth_service.verify_email_otp(owner_a, code)

    @pytest.mark.parametrize("code", [None, "", "12ab56", 123456])
    def test_non_numeric_code(self, owner_a, code):
        with pytest.raises(InvalidInput):
            auth_service.verify_email_otp(owner_a, code)

    def test_nothing_pending(self, owner_a):
        with pytest.raises(InvalidInput):
            auth_service.verify_email_otp(owner_a, "123456")

    def test_otp_routes(self, client, auth_headers, owner_a, outbox):
        headers = auth_headers(owner_a)
        response = client.post("/api/auth/otp", headers={**headers, "Accept-Language": "id"})
        assert response.status_code == 202

        sent = outbox()
        assert sent[-1].subject == "Kode verifikasi Anda"

        verified = client.post("/api/auth/otp/verify", headers=headers, json={"code": latest_code(sent)})
        assert verified.status_code == 200
        assert verified.json["email_verified"] is True

    def test_full_queue_is_503(self, client, auth_headers, app, owner_a):
        original = app.extensions["email_queue"]
        blocked = EmailQueue(maxsize=1, sender=lambda email: None)
        blocked.enqueue("x@example.test", "filler", "<p/>")
        app.extensions["email_queue"] = blocked
        try:
            response = client.post("/api/auth/otp", headers=auth_headers(owner_a))
        finally:
            app.extensions["email_queue"] = original
        assert response.status_code == 503
        assert response.json["error"] == "email_queue_full"
