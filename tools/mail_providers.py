"""
Email delivery backends: SMTP (plain, Gmail, AWS SES SMTP), AWS SES API and SendGrid.

Each backend sends exactly one message per call and returns the provider's message
identifier. Blocking clients (smtplib, boto3) run in a worker thread. Failures are
raised as ExecutionError with the provider's own error text.
"""

from __future__ import annotations

import base64
import contextlib
import hashlib
import hmac
import logging
import smtplib
import ssl
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import make_msgid
from functools import partial
from typing import Dict, List, Optional

import anyio
import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.tool_errors import ExecutionError

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"

TLS_VERSIONS = {
    "TLSv1": ssl.TLSVersion.TLSv1,
    "TLSv1.1": ssl.TLSVersion.TLSv1_1,
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
}


def split_addresses(value: Optional[str]) -> List[str]:
    return [a.strip() for a in (value or "").split(",") if a.strip()]


@dataclass
class OutgoingMessage:
    sender: str
    to: str
    subject: str
    body: str
    html: Optional[str] = None
    cc: Optional[str] = None
    bcc: Optional[str] = None
    attachments: Dict[str, str] = field(default_factory=dict)
    attachment_encoding: str = "utf8"

    def attachment_bytes(self) -> Dict[str, bytes]:
        if self.attachment_encoding == "base64":
            return {name: base64.b64decode(content) for name, content in self.attachments.items()}
        return {name: content.encode("utf-8") for name, content in self.attachments.items()}

    def recipients(self) -> List[str]:
        return split_addresses(self.to) + split_addresses(self.cc) + split_addresses(self.bcc)

    def to_mime(self) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = self.to
        if self.cc:
            msg["Cc"] = self.cc
        msg["Subject"] = self.subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(self.body)
        if self.html:
            msg.add_alternative(self.html, subtype="html")
        for name, data in self.attachment_bytes().items():
            msg.add_attachment(data, maintype="application", subtype="octet-stream", filename=name)
        return msg


@dataclass
class SmtpOptions:
    host: str
    port: Optional[int] = None
    secure: bool = True
    user: Optional[str] = None
    password: Optional[str] = None
    require_tls: bool = True
    ignore_tls: bool = False
    tls_version: Optional[str] = None
    timeout: float = 30.0

    @property
    def effective_port(self) -> int:
        if self.port:
            return self.port
        return 465 if self.secure else 587


# -------------------------------------------------------------------------
# SMTP
# -------------------------------------------------------------------------

def _tls_context(opts: SmtpOptions) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if opts.tls_version:
        version = TLS_VERSIONS[opts.tls_version]
        context.minimum_version = version
        context.maximum_version = version
    return context


def _open_smtp(opts: SmtpOptions) -> smtplib.SMTP:
    context = _tls_context(opts)
    if opts.secure:
        smtp: smtplib.SMTP = smtplib.SMTP_SSL(
            opts.host, opts.effective_port, timeout=opts.timeout, context=context
        )
    else:
        smtp = smtplib.SMTP(opts.host, opts.effective_port, timeout=opts.timeout)
    try:
        if not opts.secure:
            smtp.ehlo()
            if not opts.ignore_tls and (opts.require_tls or smtp.has_extn("starttls")):
                smtp.starttls(context=context)
                smtp.ehlo()
        if opts.user:
            smtp.login(opts.user, opts.password or "")
    except BaseException:
        smtp.close()
        raise
    return smtp


def _smtp_error(e: Exception) -> ExecutionError:
    code = getattr(e, "smtp_code", None)
    text = str(e)
    if isinstance(e, smtplib.SMTPResponseException):
        error = e.smtp_error.decode("utf-8", "replace") if isinstance(e.smtp_error, bytes) else str(e.smtp_error)
        text = f"{e.smtp_code} {error}"
    return ExecutionError(text, code="smtp_error", status_code=code, cause=e)


def _send_smtp_sync(opts: SmtpOptions, message: OutgoingMessage) -> str:
    mime = message.to_mime()
    smtp = _open_smtp(opts)
    try:
        smtp.send_message(mime, from_addr=message.sender, to_addrs=message.recipients())
    finally:
        with contextlib.suppress(smtplib.SMTPException, OSError):
            smtp.quit()
        smtp.close()
    return mime["Message-ID"]


def _verify_smtp_sync(opts: SmtpOptions) -> None:
    smtp = _open_smtp(opts)
    try:
        smtp.noop()
        smtp.quit()
    finally:
        smtp.close()


async def send_smtp(opts: SmtpOptions, message: OutgoingMessage) -> str:
    logger.info("smtp send via %s:%s to %s", opts.host, opts.effective_port, message.to)
    try:
        return await anyio.to_thread.run_sync(partial(_send_smtp_sync, opts, message))
    except (smtplib.SMTPException, OSError) as e:
        raise _smtp_error(e) from e


async def verify_smtp(opts: SmtpOptions) -> None:
    try:
        await anyio.to_thread.run_sync(partial(_verify_smtp_sync, opts))
    except (smtplib.SMTPException, OSError) as e:
        raise _smtp_error(e) from e


def gmail_options(sender: str, app_password: str, timeout: float = 30.0) -> SmtpOptions:
    return SmtpOptions(
        host="smtp.gmail.com", port=587, secure=False,
        user=sender, password=app_password, require_tls=True, timeout=timeout,
    )


def ses_smtp_password(secret_access_key: str, region: str) -> str:
    """Derive the SES SMTP password from an IAM secret key (AWS SigV4 scheme, version 4)."""

    def sign(key: bytes, msg: str) -> bytes:
        return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()

    signature = sign(("AWS4" + secret_access_key).encode("utf-8"), "11111111")
    for part in (region, "ses", "aws4_request", "SendRawEmail"):
        signature = sign(signature, part)
    return base64.b64encode(bytes([0x04]) + signature).decode("ascii")


def ses_smtp_options(region: str, access_key_id: str, secret_access_key: str, timeout: float = 30.0) -> SmtpOptions:
    return SmtpOptions(
        host=f"email-smtp.{region}.amazonaws.com",
        port=587,
        secure=False,
        user=access_key_id,
        password=ses_smtp_password(secret_access_key, region),
        require_tls=True,
        timeout=timeout,
    )


# -------------------------------------------------------------------------
# AWS SES API
# -------------------------------------------------------------------------

def _send_ses_sync(region: str, access_key_id: Optional[str], secret_access_key: Optional[str],
                   message: OutgoingMessage) -> str:
    client = boto3.client(
        "ses",
        region_name=region,
        aws_access_key_id=access_key_id or None,
        aws_secret_access_key=secret_access_key or None,
    )
    if message.attachments:
        response = client.send_raw_email(
            Source=message.sender,
            Destinations=message.recipients(),
            RawMessage={"Data": message.to_mime().as_bytes()},
        )
        return response["MessageId"]

    destination = {"ToAddresses": split_addresses(message.to)}
    if message.cc:
        destination["CcAddresses"] = split_addresses(message.cc)
    if message.bcc:
        destination["BccAddresses"] = split_addresses(message.bcc)
    body = {"Text": {"Data": message.body, "Charset": "UTF-8"}}
    if message.html:
        body["Html"] = {"Data": message.html, "Charset": "UTF-8"}

    response = client.send_email(
        Source=message.sender,
        Destination=destination,
        Message={"Subject": {"Data": message.subject, "Charset": "UTF-8"}, "Body": body},
    )
    return response["MessageId"]


async def send_ses(region: str, access_key_id: Optional[str], secret_access_key: Optional[str],
                   message: OutgoingMessage) -> str:
    logger.info("ses send in %s to %s", region, message.to)
    try:
        return await anyio.to_thread.run_sync(
            partial(_send_ses_sync, region, access_key_id, secret_access_key, message)
        )
    except ClientError as e:
        status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        raise ExecutionError(str(e), code="ses_error", status_code=status, cause=e) from e
    except BotoCoreError as e:
        raise ExecutionError(str(e), code="ses_error", cause=e) from e


# -------------------------------------------------------------------------
# SendGrid
# -------------------------------------------------------------------------

def sendgrid_payload(message: OutgoingMessage) -> dict:
    personalization: dict = {"to": [{"email": a} for a in split_addresses(message.to)]}
    if message.cc:
        personalization["cc"] = [{"email": a} for a in split_addresses(message.cc)]
    if message.bcc:
        personalization["bcc"] = [{"email": a} for a in split_addresses(message.bcc)]

    content = [{"type": "text/plain", "value": message.body}]
    if message.html:
        content.append({"type": "text/html", "value": message.html})

    payload = {
        "personalizations": [personalization],
        "from": {"email": message.sender},
        "subject": message.subject,
        "content": content,
    }
    if message.attachments:
        payload["attachments"] = [
            {
                "content": base64.b64encode(data).decode("ascii"),
                "filename": name,
                "type": "application/octet-stream",
                "disposition": "attachment",
            }
            for name, data in message.attachment_bytes().items()
        ]
    return payload


async def send_sendgrid(http_client, api_key: str, message: OutgoingMessage) -> str:
    logger.info("sendgrid send to %s", message.to)
    response = await http_client.post(
        SENDGRID_URL,
        headers={"Authorization": f"Bearer {api_key}"},
        json=sendgrid_payload(message),
    )
    if response.status_code >= 400:
        raise ExecutionError(
            f"SendGrid API error: {response.status_code} - {response.text}",
            code="sendgrid_error",
            status_code=response.status_code,
        )
    return response.headers.get("X-Message-Id") or "queued"
