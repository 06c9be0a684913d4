import base64
import json
import smtplib

import httpx
import pytest

from core.dispatcher import Dispatcher
from core.results import InvocationRequest
from tools import mail_providers
from tools.catalog import build_registry
from tools.mail_providers import OutgoingMessage, sendgrid_payload, ses_smtp_password

pytestmark = pytest.mark.unit


class FakeSMTP:
    instances = []
    refuse = set()

    def __init__(self, host, port, timeout=None, context=None):
        self.host = host
        self.port = port
        self.sent = []
        self.logged_in = None
        self.tls = False
        self.closed = False
        FakeSMTP.instances.append(self)

    def ehlo(self):
        return 250, b"ok"

    def has_extn(self, name):
        return name == "starttls"

    def starttls(self, context=None):
        self.tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, msg, from_addr=None, to_addrs=None):
        if self.refuse.intersection(to_addrs):
            raise smtplib.SMTPRecipientsRefused({a: (550, b"no such user") for a in to_addrs})
        self.sent.append((msg, from_addr, list(to_addrs)))

    def noop(self):
        return 250, b"ok"

    def quit(self):
        return 221, b"bye"

    def close(self):
        self.closed = True


class RefusingSMTP(FakeSMTP):
    def __init__(self, *args, **kwargs):
        raise ConnectionRefusedError("Connection refused")


class BadLoginSMTP(FakeSMTP):
    def login(self, user, password):
        raise smtplib.SMTPAuthenticationError(535, b"5.7.8 Authentication failed")


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.refuse = set()
    monkeypatch.setattr(mail_providers.smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(mail_providers.smtplib, "SMTP_SSL", FakeSMTP)
    return FakeSMTP


@pytest.fixture
def dispatch(ctx):
    dispatcher = Dispatcher(build_registry(), ctx)

    async def call(tool, **params):
        response = await dispatcher.dispatch(InvocationRequest(id=1, tool_name=tool, raw_params=params))
        return response.result

    return call


MESSAGE = {"from": "dev@example.com", "to": "a@example.com, b@example.com", "subject": "Hi", "body": "Hello"}


def test_ses_smtp_password_shape():
    raw = base64.b64decode(ses_smtp_password("secret", "us-east-1"))
    assert len(raw) == 33
    assert raw[0] == 0x04
    assert ses_smtp_password("secret", "us-east-1") != ses_smtp_password("secret", "eu-west-1")


def test_mime_message_with_attachment():
    message = OutgoingMessage(
        sender="a@x.io", to="b@x.io", subject="s", body="text", html="<b>x</b>", bcc="c@x.io",
        attachments={"report.txt": base64.b64encode(b"hello").decode()}, attachment_encoding="base64",
    )
    mime = message.to_mime()
    assert mime["To"] == "b@x.io"
    assert "Bcc" not in mime
    names = [part.get_filename() for part in mime.iter_attachments()]
    assert names == ["report.txt"]
    assert message.recipients() == ["b@x.io", "c@x.io"]


def test_sendgrid_payload():
    payload = sendgrid_payload(OutgoingMessage(sender="a@x.io", to="b@x.io, c@x.io", subject="s", body="t", cc="d@x.io"))
    assert payload["personalizations"] == [
        {"to": [{"email": "b@x.io"}, {"email": "c@x.io"}], "cc": [{"email": "d@x.io"}]}
    ]
    assert payload["content"] == [{"type": "text/plain", "value": "t"}]


@pytest.mark.anyio
async def test_send_email_over_smtp(dispatch, fake_smtp):
    result = await dispatch("sendEmail", **MESSAGE, smtpHost="smtp.example.com", smtpUser="u", smtpPass="p")
    assert not result.is_error
    assert result.text.startswith("Email sent successfully via smtp!\nMessage ID: <")
    smtp = fake_smtp.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.example.com", 465)
    assert smtp.logged_in == ("u", "p")
    msg, sender, recipients = smtp.sent[0]
    assert sender == "dev@example.com"
    assert recipients == ["a@example.com", "b@example.com"]
    assert msg["Subject"] == "Hi"


@pytest.mark.anyio
async def test_send_email_starttls_port(dispatch, fake_smtp):
    await dispatch("sendEmail", **MESSAGE, smtpHost="smtp.example.com", smtpSecure=False)
    smtp = fake_smtp.instances[0]
    assert smtp.port == 587
    assert smtp.tls


@pytest.mark.anyio
async def test_send_email_missing_credentials(dispatch):
    result = await dispatch("sendEmail", **MESSAGE, provider="sendgrid")
    assert result.is_error
    assert result.text.startswith("execution_error: Email sending failed: missing_credentials")
    assert "Provider: sendgrid" in result.text


@pytest.mark.anyio
async def test_send_email_via_sendgrid(ctx, dispatch):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(202, headers={"X-Message-Id": "sg-123"})

    ctx.http_transport = httpx.MockTransport(handler)
    result = await dispatch("sendEmail", **MESSAGE, provider="sendgrid", sendgridApiKey="key")
    assert result.text == "Email sent successfully via sendgrid!\nSendGrid API: Message queued successfully (sg-123)"
    assert seen[0].headers["Authorization"] == "Bearer key"
    assert json.loads(seen[0].content)["subject"] == "Hi"


@pytest.mark.anyio
async def test_sendgrid_error_status(ctx, dispatch):
    ctx.http_transport = httpx.MockTransport(lambda request: httpx.Response(401, text="bad key"))
    result = await dispatch("sendEmail", **MESSAGE, provider="sendgrid", sendgridApiKey="key")
    assert result.is_error
    assert "SendGrid API error: 401 - bad key" in result.text
    assert result.text.endswith("(status 401)")


@pytest.mark.anyio
async def test_send_email_via_ses_sdk(dispatch, monkeypatch):
    calls = {}

    class FakeSes:
        def send_email(self, **kwargs):
            calls["send_email"] = kwargs
            return {"MessageId": "ses-1"}

    def fake_client(service, **kwargs):
        calls["client"] = (service, kwargs["region_name"])
        return FakeSes()

    monkeypatch.setattr(mail_providers.boto3, "client", fake_client)
    result = await dispatch("sendEmail", **MESSAGE, provider="aws-ses-sdk", awsRegion="eu-west-1")
    assert result.text == "Email sent successfully via aws-ses-sdk!\nAWS SES Message ID: ses-1"
    assert calls["client"] == ("ses", "eu-west-1")
    assert calls["send_email"]["Destination"] == {"ToAddresses": ["a@example.com", "b@example.com"]}


@pytest.mark.anyio
async def test_bulk_emails_report_each_recipient(dispatch, fake_smtp):
    fake_smtp.refuse = {"bad@example.com"}
    result = await dispatch(
        "sendBulkEmails", **{"from": "dev@example.com"}, recipients=["ok@example.com", "bad@example.com"],
        subject="News", body="Hi {{email}}", delayMs=100, smtpHost="smtp.example.com",
    )
    assert not result.is_error
    assert "Success: 1\nFailed: 1" in result.text
    sent = [s for smtp in fake_smtp.instances for s in smtp.sent]
    assert len(sent) == 1
    assert sent[0][0].get_content().strip() == "Hi ok@example.com"


@pytest.mark.anyio
async def test_bulk_emails_all_failed(dispatch, fake_smtp):
    fake_smtp.refuse = {"bad@example.com"}
    result = await dispatch(
        "sendBulkEmails", **{"from": "dev@example.com"}, recipients=["bad@example.com"],
        subject="News", body="Hi", smtpHost="smtp.example.com",
    )
    assert result.is_error
    assert "Failed: 1" in result.text


@pytest.mark.anyio
async def test_smtp_connection_check(dispatch, fake_smtp):
    result = await dispatch("testSmtpConnection", host="smtp.example.com", port=587, secure=False, user="u", **{"pass": "p"})
    assert result.text.startswith("SMTP connection successful!")


@pytest.mark.anyio
async def test_smtp_connection_check_closes_socket(dispatch, fake_smtp):
    await dispatch("testSmtpConnection", host="smtp.example.com", port=465, user="u", **{"pass": "p"})
    assert fake_smtp.instances[0].closed


@pytest.mark.anyio
async def test_failed_login_closes_socket(dispatch, fake_smtp, monkeypatch):
    monkeypatch.setattr(mail_providers.smtplib, "SMTP_SSL", BadLoginSMTP)
    result = await dispatch("testSmtpConnection", host="smtp.example.com", port=465, user="u", **{"pass": "wrong"})
    assert result.is_error
    assert "535" in result.text
    assert fake_smtp.instances[-1].closed

    result = await dispatch("sendEmail", **MESSAGE, smtpHost="smtp.example.com", smtpUser="u", smtpPass="wrong")
    assert result.is_error
    assert all(smtp.closed for smtp in fake_smtp.instances)
    assert not any(smtp.sent for smtp in fake_smtp.instances)


@pytest.mark.anyio
async def test_smtp_connection_refused_gives_diagnostics(dispatch, monkeypatch):
    monkeypatch.setattr(mail_providers.smtplib, "SMTP_SSL", RefusingSMTP)
    result = await dispatch("testSmtpConnection", host="smtp.example.com", port=465, user="u", **{"pass": "p"})
    assert result.is_error
    assert "Diagnostic: Connection refused" in result.text


@pytest.mark.anyio
async def test_diagnose_smtp_tries_every_configuration(dispatch, fake_smtp, monkeypatch):
    monkeypatch.setattr(mail_providers.smtplib, "SMTP_SSL", RefusingSMTP)
    result = await dispatch("diagnoseSmtp", host="smtp.example.com", port=587, user="u", **{"pass": "p"})
    assert "SSL (port 465 style): Connection refused" in result.text
    assert "STARTTLS (port 587 style): SUCCESS" in result.text
    assert "Plaintext: SUCCESS" in result.text


@pytest.mark.anyio
async def test_aws_ses_smtp_info(dispatch, runner):
    runner.stdout = "AKIAEXAMPLE\n"
    result = await dispatch("getAwsSesSmtpInfo", region="eu-west-1")
    assert "SMTP Endpoint: email-smtp.eu-west-1.amazonaws.com" in result.text
    assert "Username: AKIAEXAMPLE" in result.text
    assert runner.calls[0][0] == ("aws", "configure", "get", "aws_access_key_id", "--profile", "default")


@pytest.mark.anyio
async def test_validate_email(dispatch, runner):
    runner.stdout = "example.com mail exchanger = 10 mx.example.com."
    result = await dispatch("validateEmail", email="dev@example.com")
    assert "Email format is valid" in result.text
    assert "MX records found" in result.text
    assert runner.last_argv == ["nslookup", "-type=MX", "example.com"]

    result = await dispatch("validateEmail", email="not-an-email")
    assert result.is_error
