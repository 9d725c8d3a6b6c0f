"""
Provisioning server client.

Submits the switch/port a host is plugged into, along with the room and
jack the user typed in, to the port mapper's form endpoint.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from urllib.parse import quote

import httpx

from portauthority.config import DEFAULT_PROVISIONING_URL
from portauthority.exceptions import TransportError
from portauthority.models import ProvisioningReport

logger = logging.getLogger(__name__)


FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
PASSWORD_KEY = "pass="


def render_form(report: ProvisioningReport, encode: bool = False) -> str:
    """Render a report as ``key=value`` pairs joined by ``&``.

    Values are sent as-is unless ``encode`` is set; the endpoint has always
    received them unescaped.
    """
    if encode:
        return "&".join(f"{key}={quote(value, safe='')}" for key, value in report.fields())
    return "&".join(f"{key}={value}" for key, value in report.fields())


def build_form(
    room: str,
    jack: str,
    switch_name: str,
    port: str,
    gigabit: bool,
    user: str,
    password: str,
    encode: bool = False,
) -> bytes:
    """Build the UTF-8 form body for a provisioning report."""
    report = ProvisioningReport(
        room=room,
        jack=jack,
        switch_name=switch_name,
        port=port,
        gigabit=gigabit,
        user=user,
        password=password,
    )
    return render_form(report, encode=encode).encode("utf-8")


def redact_form(form: bytes | str) -> str:
    """Return a form body with the password masked, for logging.

    Values are usually sent unescaped, so the password may itself contain
    ``&`` or ``=``. ``pass`` is always the last field; everything after its
    key is masked.
    """
    if isinstance(form, bytes):
        form = form.decode("utf-8", errors="replace")
    if form.startswith(PASSWORD_KEY):
        return f"{PASSWORD_KEY}***"
    head, sep, _ = form.partition(f"&{PASSWORD_KEY}")
    if sep:
        return f"{head}{sep}***"
    return form


class ProvisioningClient:
    """Synchronous client for the port mapper endpoint."""

    def __init__(
        self,
        url: str = DEFAULT_PROVISIONING_URL,
        verify_ssl: bool = True,
        timeout: float = 30.0,
        user_agent: str = "portauthority/1.0",
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize provisioning client.

        Args:
            url: Form endpoint to POST to
            verify_ssl: Verify the server's TLS certificate
            timeout: Request timeout in seconds
            user_agent: User-Agent header for requests
            transport: Custom httpx transport (used by tests)
        """
        self.url = url
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport

    def submit(self, form: bytes) -> str:
        """POST a form body and return the response body as text.

        The status code is not inspected; whatever the server says is
        handed back to the caller.

        Raises:
            TransportError: on connection, TLS, timeout or protocol failure
        """
        logger.info("Submitting report to %s: %s", self.url, redact_form(form))

        try:
            with httpx.Client(
                verify=self.verify_ssl,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = client.post(
                    self.url,
                    content=form,
                    headers={
                        "Content-Type": FORM_CONTENT_TYPE,
                        "User-Agent": self.user_agent,
                    },
                )
                body = response.text
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {self.url} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {self.url} failed: {e}") from e

        logger.debug("Provisioning server returned %d (%d bytes)", response.status_code, len(body))
        return body

    def submit_report(self, report: ProvisioningReport, encode: bool = False) -> str:
        """Render and submit a report."""
        return self.submit(render_form(report, encode=encode).encode("utf-8"))
