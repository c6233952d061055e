from dataclasses import dataclass
from typing import List, Optional

import httpx

from constants import LANGUAGE_RUNTIMES
from errors import ProviderError, UnsupportedLanguage
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Credential:
    client_id: str
    client_secret: str

    @property
    def tail(self) -> str:
        return self.client_id[-4:]


def parse_credentials(raw: str) -> List[Credential]:
    """Parse ``"id:secret,id:secret"`` into credentials, skipping blank entries."""
    credentials = []
    for chunk in (raw or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        client_id, sep, client_secret = chunk.partition(":")
        if not sep or not client_id or not client_secret:
            raise ValueError(f"Malformed execution credential entry ending in ...{chunk[-4:]}")
        credentials.append(Credential(client_id.strip(), client_secret.strip()))
    return credentials


class CredentialPool:
    """Round-robin rotation over a fixed list of provider credentials."""

    def __init__(self, credentials: List[Credential]):
        self._credentials = list(credentials)
        self._index = 0

    def next(self) -> Credential:
        if not self._credentials:
            raise ProviderError("No execution credentials configured.")
        credential = self._credentials[self._index]
        self._index = (self._index + 1) % len(self._credentials)
        return credential

    def __len__(self) -> int:
        return len(self._credentials)


@dataclass(frozen=True)
class LanguageRuntime:
    language: str
    version_index: str


@dataclass
class ExecutionResult:
    output: str
    status_code: Optional[int] = None
    memory: Optional[str] = None
    cpu_time: Optional[str] = None

    def describe(self) -> str:
        return (
            f"{self.output}\n\n[Execution Info]\n"
            f"Status: {self.status_code}\n"
            f"Memory: {self.memory or 0}kb\n"
            f"CPU: {self.cpu_time or 0}s"
        )


def _as_text(value) -> Optional[str]:
    return None if value is None else str(value)


class ExecutionRelay:
    """Forwards source code and stdin to the external execution provider."""

    def __init__(self, pool: CredentialPool, url: str, timeout: Optional[float] = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.pool = pool
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @staticmethod
    def resolve(language: str) -> LanguageRuntime:
        runtime = LANGUAGE_RUNTIMES.get(language)
        if runtime is None:
            raise UnsupportedLanguage()
        return LanguageRuntime(*runtime)

    async def execute(self, language: str, code: str, stdin: Optional[str]) -> ExecutionResult:
        runtime = self.resolve(language)
        credential = self.pool.next()
        logger.info(f"Executing {language} code using key ending in ...{credential.tail}")

        body = {
            "clientId": credential.client_id,
            "clientSecret": credential.client_secret,
            "script": code,
            "stdin": stdin if stdin else "",
            "language": runtime.language,
            "versionIndex": runtime.version_index,
        }
        try:
            response = await self._client.post(self.url, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Execution provider request failed: {e}", exc_info=True)
            raise ProviderError() from e
        except ValueError as e:
            logger.error(f"Execution provider returned a non-JSON body: {e}")
            raise ProviderError() from e
        if not isinstance(data, dict):
            logger.error(f"Execution provider returned unexpected payload type {type(data).__name__}")
            raise ProviderError()
        output = data.get("output")
        if output is not None and not isinstance(output, str):
            logger.error(f"Execution provider returned non-text output of type {type(output).__name__}")
            raise ProviderError()

        return ExecutionResult(
            output=output or "",
            status_code=data.get("statusCode"),
            memory=_as_text(data.get("memory")),
            cpu_time=_as_text(data.get("cpuTime")),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
