"""
Custom Exception Hierarchy for graphsession

This module provides the exception hierarchy raised across the session layer,
carrying structured context so failures are part of the return contract
instead of a log line.
"""

from typing import Any, Dict, List, Optional


class GraphSessionError(Exception):
    """
    Base exception for graphsession.

    Attributes:
        message: Human-readable description
        error_code: Driver status code (``Neo.*``) or one of the ``GRAPH_*`` codes
        context: Alias, session id, query and similar details
        cause: Underlying driver exception, if any
        recovery_suggestion: Hint for whoever operates the database
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = dict(context) if context else {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def _details(self) -> List[str]:
        details = []
        if self.context:
            pairs = ", ".join(f"{key}={value}" for key, value in self.context.items())
            details.append(f"context: {pairs}")
        if self.cause is not None:
            details.append(f"caused by: {self.cause}")
        if self.recovery_suggestion:
            details.append(f"suggestion: {self.recovery_suggestion}")
        return details

    def __str__(self) -> str:
        head = f"[{self.error_code}] {self.message}" if self.error_code else self.message
        return " ".join([head, *(f"({detail})" for detail in self._details())])

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for log events."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": dict(self.context),
            "cause": None if self.cause is None else str(self.cause),
            "recovery_suggestion": self.recovery_suggestion,
        }


class ConfigurationError(GraphSessionError):
    """Raised when configuration cannot be loaded or is invalid."""

    def __init__(
        self, message: str, invalid_fields: Optional[list] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if invalid_fields:
            context["invalid_fields"] = ", ".join(invalid_fields)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_CONFIGURATION")
        super().__init__(message, **kwargs)
        self.invalid_fields = invalid_fields or []


class GraphDatabaseError(GraphSessionError):
    """Base class for errors coming out of the graph database driver."""

    pass


def safe_uri(uri: str) -> str:
    """Strip credentials from a connection URI."""
    return uri.split("@")[-1] if "@" in uri else uri


class GraphConnectionError(GraphDatabaseError):
    """Raised when the database cannot be reached."""

    def __init__(self, message: str, uri: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if uri:
            context["uri"] = safe_uri(uri)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "GRAPH_CONNECTION_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check the connection settings and ensure the database is running",
        )
        super().__init__(message, **kwargs)


class UnknownConnectionError(GraphDatabaseError):
    """Raised when an alias does not name a registered connection."""

    def __init__(self, alias: str, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        context["alias"] = alias
        kwargs["context"] = context
        kwargs.setdefault("error_code", "UNKNOWN_CONNECTION")
        kwargs.setdefault(
            "recovery_suggestion", "Open the connection before using its alias"
        )
        super().__init__(f"No connection registered as '{alias}'", **kwargs)
        self.alias = alias


class GraphQueryError(GraphDatabaseError):
    """Raised when query execution fails."""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        parameters: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context") or {}
        if query:
            # Truncate long queries for readability
            context["query"] = query[:200] + "..." if len(query) > 200 else query
        if parameters:
            context["parameter_count"] = len(parameters)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "GRAPH_QUERY_FAILED")
        super().__init__(message, **kwargs)


class GraphTransactionError(GraphQueryError):
    """Raised when a transaction's final attempt did not commit."""

    def __init__(self, message: str, outcome: Any = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if outcome is not None:
            context["error_kind"] = outcome.error_kind.value
            context["attempts"] = outcome.attempt
            if outcome.rollback_error is not None:
                context["rollback_error"] = str(outcome.rollback_error)
            kwargs.setdefault("cause", outcome.error)
        kwargs["context"] = context
        kwargs.setdefault("error_code", "GRAPH_TRANSACTION_FAILED")
        super().__init__(message, **kwargs)
        self.outcome = outcome


class GraphSessionCloseError(GraphDatabaseError):
    """Raised when sessions or drivers fail to close cleanly."""

    def __init__(
        self, message: str, failures: Optional[Dict[str, BaseException]] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if failures:
            context["failed"] = ", ".join(sorted(failures))
        kwargs["context"] = context
        kwargs.setdefault("error_code", "GRAPH_CLOSE_FAILED")
        super().__init__(message, **kwargs)
        self.failures = failures or {}


def wrap_neo4j_exception(
    exc: BaseException, context: Optional[Dict[str, Any]] = None
) -> GraphDatabaseError:
    """
    Wrap a raw neo4j driver exception in our exception hierarchy.

    The driver's status code (e.g. ``Neo.ClientError.Statement.SyntaxError``)
    is kept as the error code when present.

    Args:
        exc: The original exception
        context: Optional context information

    Returns:
        GraphDatabaseError: Wrapped exception with enhanced context
    """
    from neo4j.exceptions import (
        ClientError,
        CypherSyntaxError,
        ServiceUnavailable,
        SessionExpired,
    )

    error_message = str(exc)
    code = getattr(exc, "code", None)
    kwargs: Dict[str, Any] = {"context": dict(context or {}), "cause": exc}
    if code:
        kwargs["error_code"] = code

    if isinstance(exc, (ServiceUnavailable, SessionExpired)) or (
        "connection" in error_message.lower()
        or "unavailable" in error_message.lower()
    ):
        return GraphConnectionError(
            f"Graph database connection failed: {error_message}", **kwargs
        )
    elif isinstance(exc, (CypherSyntaxError, ClientError)) or (
        "syntax" in error_message.lower()
    ):
        return GraphQueryError(f"Graph query failed: {error_message}", **kwargs)
    else:
        return GraphDatabaseError(
            f"Graph database operation failed: {error_message}", **kwargs
        )
