"""Delivery of rendered alerts.

Transports raise DeliveryError; the Dispatcher turns every outcome into a
Delivered/Failed value so a failed send never stops the monitor.
"""

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx
import structlog

from journalmon.config import Config

log = structlog.get_logger()


class DeliveryError(Exception):
    """The transport could not deliver an alert."""


@dataclass(frozen=True)
class Delivered:
    pass


@dataclass(frozen=True)
class Failed:
    reason: str


DispatchOutcome = Delivered | Failed


class Transport(ABC):
    """Something that can get a subject and body to a human."""

    name = "transport"

    @abstractmethod
    def send(self, subject: str, body: str) -> None:
        """Deliver one alert.

        Raises:
            DeliveryError: If delivery failed
        """

    def close(self) -> None:
        pass


class MailerTransport(Transport):
    """Sends alerts by running an external mailer command.

    The command is run with an argument vector, never through a shell, so
    log content in the subject or body can't be interpreted as shell syntax.
    """

    name = "mailer"

    def __init__(
        self,
        recipient: str,
        mailer_path: str = "mailer",
        mailer_config: str | None = None,
        timeout: float = 60.0,
    ):
        self.recipient = recipient
        self.mailer_path = mailer_path
        self.mailer_config = mailer_config
        self.timeout = timeout

    def build_args(self, subject: str, body: str) -> list[str]:
        args = [self.mailer_path]
        if self.mailer_config:
            args += ["--c", self.mailer_config]
        args += ["--to", self.recipient, "--subject", subject, "--body", body]
        return args

    def send(self, subject: str, body: str) -> None:
        args = self.build_args(subject, body)
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise DeliveryError(f"mailer not found: {self.mailer_path}") from e
        except subprocess.TimeoutExpired as e:
            raise DeliveryError(f"mailer timed out after {self.timeout:g}s") from e
        except (OSError, ValueError) as e:
            # E2BIG for huge bodies, ValueError for embedded NUL bytes
            raise DeliveryError(f"cannot run mailer: {e}") from e

        if result.stdout.strip():
            log.debug("Mailer output", output=result.stdout.strip()[:500])
        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()[:200]
            raise DeliveryError(f"mailer exited with status {result.returncode}: {detail}")


class WebhookTransport(Transport):
    """Posts alerts as JSON to an HTTP endpoint."""

    name = "webhook"

    def __init__(self, webhook_url: str, recipient: str, client: httpx.Client | None = None):
        self.webhook_url = webhook_url
        self.recipient = recipient
        self._client = client or httpx.Client(timeout=10.0)

    def send(self, subject: str, body: str) -> None:
        try:
            response = self._client.post(
                self.webhook_url,
                json={
                    "recipient": self.recipient,
                    "subject": subject,
                    "body": body,
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DeliveryError(f"webhook returned HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise DeliveryError(f"webhook request failed: {e}") from e

    def close(self) -> None:
        self._client.close()


class Dispatcher:
    """Hands rendered alerts to a transport and classifies the outcome."""

    def __init__(self, transport: Transport):
        self.transport = transport

    def dispatch(self, subject: str, body: str) -> DispatchOutcome:
        try:
            self.transport.send(subject, body)
        except DeliveryError as e:
            log.error("Alert delivery failed", transport=self.transport.name, error=str(e))
            return Failed(str(e))
        log.info("Alert delivered", transport=self.transport.name, subject=subject)
        return Delivered()

    def close(self) -> None:
        self.transport.close()


def build_transport(config: Config) -> Transport:
    """Create the transport selected by the configuration."""
    if config.transport == "webhook":
        assert config.webhook_url  # checked by Config.validate
        return WebhookTransport(config.webhook_url, config.recipient)
    return MailerTransport(
        recipient=config.recipient,
        mailer_path=config.mailer_path,
        mailer_config=config.mailer_config,
    )
