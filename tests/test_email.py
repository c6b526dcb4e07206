from syncschool.services.email_service import EmailService, render_receipt_html
from tests.conftest import auth_headers


class RecordingEmailService:
    enabled = True

    def __init__(self):
        self.receipts = []

    async def send_payment_receipt(self, recipient, school_name, student_name, transaction_id, amount, method, paid_on):
        self.receipts.append((recipient, school_name, student_name, transaction_id, amount, method))
        return True


async def test_disabled_service_sends_nothing():
    service = EmailService()
    assert not service.enabled
    assert await service.send_email_with_retry(["a@example.com"], "Subject", "<p>Body</p>") is False


async def test_receipt_goes_to_guardian(app, client, session, school, bursar, student):
    student.guardian_email = "ruth.phiri@example.com"
    await session.commit()
    recorder = RecordingEmailService()
    app.state.email_service = recorder

    response = await client.post(
        "/api/v1/payments",
        json={"studentId": student.id, "amount": 450, "method": "MOBILE_MONEY"},
        headers=auth_headers(bursar),
    )
    assert response.status_code == 201
    assert recorder.receipts == [(
        "ruth.phiri@example.com",
        "Chalo Primary School",
        "Mary Phiri",
        response.json()["transactionId"],
        450.0,
        "MOBILE_MONEY",
    )]


async def test_no_receipt_without_guardian_email(app, client, school, bursar, student):
    recorder = RecordingEmailService()
    app.state.email_service = recorder

    response = await client.post(
        "/api/v1/payments",
        json={"studentId": student.id, "amount": 450, "method": "CASH"},
        headers=auth_headers(bursar),
    )
    assert response.status_code == 201
    assert recorder.receipts == []


def test_receipt_escapes_names():
    body = render_receipt_html(
        "Chalo & Sons <Primary>",
        "<script>alert(1)</script>",
        "TXN-4K9Q2ZPA",
        1250,
        "BANK_DEPOSIT",
        "2026-03-02",
    )
    assert "Chalo &amp; Sons &lt;Primary&gt;" in body
    assert "<script>" not in body
    assert "1,250.00" in body
    assert "Bank Deposit" in body
