"""
Antfarm Error Hierarchy

Categorized exceptions for the fleet orchestration layer. Errors are
classified by category so callers can tell construction failures apart
from shutdown, configuration and consensus query failures:
- CONFIGURATION: rejected synchronously at the call site
- PROCESS: a node process could not be started or stopped
- API: a node API call failed
- CONSENSUS: a fleet-wide consensus query could not be completed
- SHUTDOWN: work was refused because stopping has begun

Steady-state job failures are never raised; they are logged and retried.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class ErrorCategory(Enum):
    """What kind of error is this?"""

    CONFIGURATION = auto()
    """Unknown job names, too few ants, missing ants."""

    PROCESS = auto()
    """Node process unreachable, exited early, failed to stop."""

    API = auto()
    """Node API returned an error or could not be reached."""

    CONSENSUS = auto()
    """Consensus group computation or fleet sync failures."""

    SHUTDOWN = auto()
    """Work refused because the owning group is stopping."""


@dataclass(eq=False)
class AntfarmError(Exception):
    """
    Base exception for antfarm errors.

    All antfarm errors carry:
    - message: Human-readable description
    - category: What kind of error
    - context: Additional debugging info (data dir, addresses, ...)
    - cause: Original exception if wrapping

    Example:
        raise StartTimeoutError(
            data_dir="/tmp/ant-0",
            api_addr="127.0.0.1:9980",
            timeout=180.0,
        )
    """

    message: str
    category: ErrorCategory
    context: dict[str, Any] = field(default_factory=dict)
    cause: BaseException | None = None

    def __str__(self) -> str:
        ctx = f" {self.context}" if self.context else ""
        cause = f" (caused by: {self.cause})" if self.cause else ""
        return f"[{self.category.name}] {self.message}{ctx}{cause}"


# =============================================================================
# Shutdown Errors
# =============================================================================

class StoppedError(AntfarmError):
    """The thread group has begun stopping and refuses new work."""

    def __init__(self, message: str = "thread group has been stopped", **context: Any):
        super().__init__(
            message=message,
            category=ErrorCategory.SHUTDOWN,
            context=context,
        )


# =============================================================================
# Configuration Errors - rejected at the call site
# =============================================================================

class ConfigurationError(AntfarmError):
    """Caller supplied an invalid request."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        **context: Any,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            context=context,
            cause=cause,
        )


class UnknownJobError(ConfigurationError):
    """No job is registered under the requested name."""

    def __init__(self, job: str, available: list[str]):
        super().__init__(
            message=f"no such job: {job}",
            job=job,
            available=available,
        )


class InsufficientPeersError(ConfigurationError):
    """Connecting ants requires at least two of them."""

    def __init__(self, count: int):
        super().__init__(
            message=f"connecting ants requires at least 2 ants, got {count}",
            count=count,
        )


class AntNotFoundError(ConfigurationError):
    """No ant with the requested name is part of the farm."""

    def __init__(self, name: str):
        super().__init__(
            message=f"ant with name {name} doesn't exist",
            name=name,
        )


# =============================================================================
# Process Errors - fatal to ant construction
# =============================================================================

class ProcessError(AntfarmError):
    """A node process failed to start, become reachable or stop."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        **context: Any,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.PROCESS,
            context=context,
            cause=cause,
        )


class StartTimeoutError(ProcessError):
    """The node did not answer its status endpoint before the deadline."""

    def __init__(
        self,
        data_dir: str,
        api_addr: str,
        timeout: float,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message=f"node at {api_addr} was not reachable within {timeout:.1f}s",
            cause=cause,
            data_dir=data_dir,
            api_addr=api_addr,
            timeout=timeout,
        )


class ProcessExitedError(ProcessError):
    """The node process terminated before it became reachable."""

    def __init__(self, data_dir: str, return_code: int | None):
        super().__init__(
            message=f"node process exited with code {return_code} before becoming reachable",
            data_dir=data_dir,
            return_code=return_code,
        )


class WalletBootstrapError(ProcessError):
    """The node's wallet could not be initialized or unlocked."""

    def __init__(
        self,
        message: str,
        data_dir: str,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message=message,
            cause=cause,
            data_dir=data_dir,
        )


# =============================================================================
# API Errors
# =============================================================================

class NodeAPIError(AntfarmError):
    """A node API request failed or returned a non-success status."""

    def __init__(
        self,
        method: str,
        path: str,
        status: int | None = None,
        body: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(
            message=f"{method} {path} failed" + (f" with status {status}" if status else ""),
            category=ErrorCategory.API,
            context={
                "method": method,
                "path": path,
                "status": status,
                "body": body,
            },
            cause=cause,
        )

    @property
    def status(self) -> int | None:
        return self.context.get("status")


# =============================================================================
# Consensus Errors
# =============================================================================

class ConsensusQueryError(AntfarmError):
    """At least one ant could not report its chain tip."""

    def __init__(self, data_dir: str, cause: BaseException | None = None):
        super().__init__(
            message="unable to get consensus information",
            category=ErrorCategory.CONSENSUS,
            context={"data_dir": data_dir},
            cause=cause,
        )


class SyncTimeoutError(AntfarmError):
    """The farm did not converge on a single consensus group in time."""

    def __init__(self, timeout: float, groups: int):
        super().__init__(
            message=f"ants did not sync within {timeout:.1f}s, {groups} consensus groups remain",
            category=ErrorCategory.CONSENSUS,
            context={"timeout": timeout, "groups": groups},
        )
