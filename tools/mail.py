import re

import anyio
import httpx

from core.process import safe_arg
from core.registry import ToolDefinition
from core.results import ToolResult
from core.schema import boolean, enum, integer, string, string_array, string_map
from core.tool_errors import ExecutionError, ToolError
from tools import mail_providers as providers
from tools.mail_providers import OutgoingMessage, SmtpOptions


EMAIL_FORMAT = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

SMTP_FIELDS = (
    string("smtpHost"),
    integer("smtpPort", minimum=1, maximum=65535),
    boolean("smtpSecure", default=True),
    string("smtpUser"),
    string("smtpPass"),
)
AWS_FIELDS = (
    string("awsRegion"),
    string("awsAccessKeyId"),
    string("awsSecretAccessKey"),
)


def _require(params, *names):
    for name in names:
        if not params.get(name):
            raise ExecutionError(f"missing_credentials: {name} is required for provider {params['provider']}",
                                 code="missing_credentials")


def _smtp_options(params, ctx) -> SmtpOptions:
    _require(params, "smtpHost")
    return SmtpOptions(
        host=params["smtpHost"],
        port=params.get("smtpPort"),
        secure=params.get("smtpSecure", True),
        user=params.get("smtpUser"),
        password=params.get("smtpPass"),
        timeout=ctx.settings.smtp_timeout,
    )


async def deliver(params, ctx, message: OutgoingMessage) -> str:
    """Send one message through the provider named in ``params``; return its id line."""
    provider = params["provider"]
    timeout = ctx.settings.smtp_timeout

    if provider == "smtp":
        message_id = await providers.send_smtp(_smtp_options(params, ctx), message)
        return f"Message ID: {message_id}"

    if provider == "aws-ses-sdk":
        _require(params, "awsRegion")
        message_id = await providers.send_ses(
            params["awsRegion"], params.get("awsAccessKeyId"), params.get("awsSecretAccessKey"), message
        )
        return f"AWS SES Message ID: {message_id}"

    if provider == "aws-ses-smtp":
        _require(params, "awsRegion", "awsAccessKeyId", "awsSecretAccessKey")
        opts = providers.ses_smtp_options(
            params["awsRegion"], params["awsAccessKeyId"], params["awsSecretAccessKey"], timeout
        )
        message_id = await providers.send_smtp(opts, message)
        return f"Message ID: {message_id}"

    if provider == "sendgrid":
        _require(params, "sendgridApiKey")
        async with ctx.http_client() as client:
            try:
                message_id = await providers.send_sendgrid(client, params["sendgridApiKey"], message)
            except httpx.HTTPError as e:
                raise ExecutionError(f"SendGrid request failed: {e}", code="sendgrid_error", cause=e) from e
        return f"SendGrid API: Message queued successfully ({message_id})"

    if provider == "gmail":
        _require(params, "gmailAppPassword")
        opts = providers.gmail_options(message.sender, params["gmailAppPassword"], timeout)
        message_id = await providers.send_smtp(opts, message)
        return f"Message ID: {message_id}"

    raise ExecutionError(f"Unsupported provider: {provider}", code="unsupported_provider")


async def send_email(params, ctx):
    message = OutgoingMessage(
        sender=params["from"],
        to=params["to"],
        subject=params["subject"],
        body=params["body"],
        html=params.get("html"),
        cc=params.get("cc"),
        bcc=params.get("bcc"),
        attachments=params.get("attachments") or {},
        attachment_encoding=params["attachmentEncoding"],
    )
    try:
        result = await deliver(params, ctx, message)
    except ToolError as e:
        return ToolResult.fail(
            ExecutionError(
                f"Email sending failed: {e.message}\n\nProvider: {params['provider']}\n"
                f"From: {params['from']}\nTo: {params['to']}",
                code=e.code,
                status_code=getattr(e, "status_code", None),
            )
        )
    return ToolResult.ok(f"Email sent successfully via {params['provider']}!\n{result}")


async def send_bulk_emails(params, ctx):
    recipients = params["recipients"]
    lines = []
    succeeded = 0
    for index, recipient in enumerate(recipients):
        html = params.get("html")
        message = OutgoingMessage(
            sender=params["from"],
            to=recipient,
            subject=params["subject"],
            body=params["body"].replace("{{email}}", recipient),
            html=html.replace("{{email}}", recipient) if html else None,
        )
        try:
            result = await deliver(params, ctx, message)
        except ToolError as e:
            lines.append(f"Failed {recipient} - {e.message}")
        else:
            succeeded += 1
            lines.append(f"Success {recipient} - {result}")
        if index < len(recipients) - 1:
            await anyio.sleep(params["delayMs"] / 1000)

    failed = len(recipients) - succeeded
    text = (
        "Bulk email sending completed!\n\n"
        f"Success: {succeeded}\nFailed: {failed}\n\n"
        "Detailed results:\n" + "\n".join(lines)
    )
    return ToolResult.ok(text) if succeeded or not recipients else ToolResult.fail(text)


def smtp_diagnostics(error: ExecutionError) -> str:
    text = error.message
    hints = []
    if "ECONNREFUSED" in text or "Connection refused" in text or "timed out" in text:
        hints = [
            "Diagnostic: Connection refused. Check if:",
            "- SMTP server is running",
            "- Host and port are correct",
            "- Firewall allows connections",
        ]
    elif "wrong version" in text or "SSL" in text:
        hints = [
            "Diagnostic: TLS/SSL version mismatch. Try:",
            "- Setting secure: false for STARTTLS (ports 587, 25)",
            "- Setting secure: true for SSL (port 465)",
            "- Adjusting TLS version requirements",
            "- Using ignoreTLS: true for plaintext connections",
        ]
    elif "Authentication" in text or error.status_code == 535:
        hints = [
            "Diagnostic: Authentication failed. Check:",
            "- Username and password are correct",
            "- SMTP credentials have proper permissions",
        ]
    hints += [
        "",
        "Suggested configurations:",
        "For AWS SES SMTP (port 587): secure: false, requireTLS: true",
        "For AWS SES SMTP (port 465): secure: true, requireTLS: false",
        "For plaintext testing: secure: false, ignoreTLS: true",
    ]
    return "\n".join(hints)


async def check_smtp_connection(params, ctx):
    opts = SmtpOptions(
        host=params["host"],
        port=params["port"],
        secure=params["secure"],
        user=params["user"],
        password=params["pass"],
        require_tls=params["requireTLS"],
        ignore_tls=params["ignoreTLS"],
        tls_version=params.get("tlsVersion"),
        timeout=ctx.settings.smtp_timeout,
    )
    try:
        await providers.verify_smtp(opts)
    except ExecutionError as e:
        return ToolResult.fail(
            ExecutionError(f"SMTP error: {e.message}\n\n{smtp_diagnostics(e)}", code=e.code,
                           status_code=e.status_code)
        )

    details = [
        "SMTP connection successful!",
        "Connection details:",
        f"- Host: {opts.host}:{opts.port}",
        f"- Secure: {opts.secure}",
        f"- TLS Required: {opts.require_tls}",
        f"- TLS Ignored: {opts.ignore_tls}",
    ]
    if opts.tls_version:
        details.append(f"- TLS Version: {opts.tls_version}")
    return ToolResult.ok("\n".join(details))


DIAGNOSE_CONFIGURATIONS = [
    ("SSL (port 465 style)", dict(secure=True, require_tls=False, ignore_tls=False)),
    ("STARTTLS (port 587 style)", dict(secure=False, require_tls=True, ignore_tls=False)),
    ("Plaintext", dict(secure=False, require_tls=False, ignore_tls=True)),
]


async def diagnose_smtp(params, ctx):
    results = []
    for name, options in DIAGNOSE_CONFIGURATIONS:
        opts = SmtpOptions(
            host=params["host"], port=params["port"], user=params["user"], password=params["pass"],
            timeout=ctx.settings.smtp_timeout, **options,
        )
        try:
            await providers.verify_smtp(opts)
        except ExecutionError as e:
            results.append(f"{name}: {e.message}")
        else:
            results.append(f"{name}: SUCCESS")

    return ToolResult.ok(
        f"SMTP Diagnostic Results for {params['host']}:{params['port']}\n\n" + "\n".join(results) +
        "\n\nMost common AWS SES configurations:\n"
        "- Port 465: Use SSL configuration (secure: true)\n"
        "- Port 587: Use STARTTLS configuration (secure: false, requireTLS: true)\n"
        "- Port 25: Usually requires STARTTLS but may be blocked by ISP"
    )


async def get_aws_ses_smtp_info(params, ctx):
    profile = safe_arg(params["profile"], "profile")
    region = safe_arg(params["region"], "region")

    try:
        key_id = (await ctx.runner.check(["aws", "configure", "get", "aws_access_key_id", "--profile", profile])).stdout.strip()
        secret = (await ctx.runner.check(["aws", "configure", "get", "aws_secret_access_key", "--profile", profile])).stdout.strip()
        if not key_id:
            raise ExecutionError("AWS access key not found. Make sure AWS CLI is configured.", code="aws_not_configured")
        if not secret:
            raise ExecutionError("AWS secret key not found.", code="aws_not_configured")
    except ExecutionError as e:
        return ToolResult.fail(
            ExecutionError(
                f"Error getting AWS SES SMTP info: {e.message}\n\nMake sure:\n"
                "1. AWS CLI is installed: https://aws.amazon.com/cli/\n"
                "2. AWS CLI is configured: aws configure\n"
                "3. IAM user has SES permissions",
                code=e.code,
                exit_code=e.exit_code,
            )
        )

    info = "\n".join([
        "AWS SES SMTP Configuration:",
        f"SMTP Endpoint: email-smtp.{region}.amazonaws.com",
        "Ports: 587 (STARTTLS) or 465 (SSL)",
        f"Username: {key_id}",
        f"Password: {providers.ses_smtp_password(secret, region)}",
        f"Region: {region}",
        "",
        "Connection strings:",
        "- STARTTLS (port 587): secure: false, requireTLS: true",
        "- SSL (port 465): secure: true, requireTLS: false",
        "",
        "Note: Ensure IAM user has SES sending permissions",
    ])
    return ToolResult.ok(info)


async def send_ses_test_email(params, ctx):
    message = OutgoingMessage(sender=params["from"], to=params["to"], subject=params["subject"], body=params["body"])
    try:
        message_id = await providers.send_ses(
            params["region"], params["accessKeyId"], params["secretAccessKey"], message
        )
    except ExecutionError as e:
        return ToolResult.fail(
            ExecutionError(f"AWS SES error: {e.message}", code=e.code, status_code=e.status_code)
        )
    return ToolResult.ok(f"Email sent successfully! Message ID: {message_id}")


async def validate_email(params, ctx):
    email = params["email"]
    if not EMAIL_FORMAT.match(email):
        return ToolResult.fail(ExecutionError(f"Invalid email format: {email}", code="invalid_email"))
    results = ["Email format is valid"]

    if params["checkMx"]:
        domain = safe_arg(email.split("@", 1)[1], "email")
        try:
            lookup = await ctx.runner.run(["nslookup", "-type=MX", domain])
        except ExecutionError as e:
            results.append(f"MX lookup failed: {e.message}")
        else:
            if lookup.ok and "mail exchanger" in lookup.stdout:
                results.append("MX records found")
            elif lookup.ok:
                results.append("No MX records found")
            else:
                results.append("MX lookup failed")

    if params["checkSmtp"]:
        results.append("SMTP validation requires specialized services like NeverBounce or Hunter.io")

    return ToolResult.ok(f"Email Validation Results for {email}:\n\n" + "\n".join(results))


TOOLS = [
    ToolDefinition(
        name="sendEmail",
        description="Send email using various providers (SMTP, AWS SES, SendGrid, etc.)",
        fields=(
            enum("provider", ["smtp", "aws-ses-sdk", "aws-ses-smtp", "sendgrid", "gmail"], default="smtp"),
            string("from", required=True),
            string("to", required=True, description="Comma separated addresses"),
            string("subject", required=True),
            string("body", required=True),
            string("html"),
            string("cc"),
            string("bcc"),
            string_map("attachments", description="filename -> content"),
            enum("attachmentEncoding", ["utf8", "base64"], default="utf8"),
            *SMTP_FIELDS,
            *AWS_FIELDS,
            string("sendgridApiKey"),
            string("gmailAppPassword"),
        ),
        handler=send_email,
    ),
    ToolDefinition(
        name="sendBulkEmails",
        description="Send emails to multiple recipients with rate limiting",
        fields=(
            enum("provider", ["smtp", "aws-ses-sdk"], default="smtp"),
            string("from", required=True),
            string_array("recipients", required=True),
            string("subject", required=True),
            string("body", required=True, description="{{email}} is replaced by the recipient"),
            string("html"),
            integer("delayMs", default=1000, minimum=100, maximum=5000),
            *SMTP_FIELDS,
            *AWS_FIELDS,
        ),
        handler=send_bulk_emails,
    ),
    ToolDefinition(
        name="testSmtpConnection",
        description="Test SMTP server (SES SMTP creds) with TLS/SSL options",
        fields=(
            string("host", required=True),
            integer("port", required=True, minimum=1, maximum=65535),
            boolean("secure", default=True),
            string("user", required=True),
            string("pass", required=True),
            boolean("requireTLS", default=True),
            boolean("ignoreTLS", default=False),
            enum("tlsVersion", list(providers.TLS_VERSIONS)),
        ),
        handler=check_smtp_connection,
    ),
    ToolDefinition(
        name="diagnoseSmtp",
        description="Diagnose SMTP connection issues by testing multiple configurations",
        fields=(
            string("host", required=True),
            integer("port", required=True, minimum=1, maximum=65535),
            string("user", required=True),
            string("pass", required=True),
        ),
        handler=diagnose_smtp,
    ),
    ToolDefinition(
        name="getAwsSesSmtpInfo",
        description="Get AWS SES SMTP information from AWS configuration",
        fields=(string("profile", default="default"), string("region", default="us-east-1")),
        handler=get_aws_ses_smtp_info,
    ),
    ToolDefinition(
        name="testAmazonSes",
        description="Send email using AWS SDK (IAM creds)",
        fields=(
            string("region", required=True),
            string("accessKeyId", required=True),
            string("secretAccessKey", required=True),
            string("from", required=True),
            string("to", required=True),
            string("subject", required=True),
            string("body", required=True),
        ),
        handler=send_ses_test_email,
    ),
    ToolDefinition(
        name="validateEmail",
        description="Validate email addresses and check deliverability",
        fields=(
            string("email", required=True),
            boolean("checkMx", default=True),
            boolean("checkSmtp", default=False),
        ),
        handler=validate_email,
    ),
]
