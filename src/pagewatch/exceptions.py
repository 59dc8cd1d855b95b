"""pagewatch exception hierarchy.

Three classes of failure matter to the engine:

* ``ConfigurationError``: fatal; raised before any browser session exists.
* ``SessionError``: fatal for the current target's run only (browser launch
  failed, navigation failed).
* ``CycleError``: recoverable for the current cycle. These are the expected
  outcomes of the detection steps and are logged, never escalated.
"""

from __future__ import annotations


class PagewatchError(Exception):
    """Base exception for all pagewatch errors."""


class ConfigurationError(PagewatchError):
    """Raised when the configuration cannot produce a runnable set of targets."""


# ---------------------------------------------------------------------------
# Session-fatal
# ---------------------------------------------------------------------------


class SessionError(PagewatchError):
    """Raised when a browser session cannot be allocated or driven.

    Attributes:
        url: Target URL the session was created for.
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Browser session for {url} failed: {reason}")


class NavigationError(SessionError):
    """Raised when navigating to a target fails."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(url, reason)
        self.args = (f"Navigation to {url} failed: {reason}",)


# ---------------------------------------------------------------------------
# Recoverable per cycle
# ---------------------------------------------------------------------------


class CycleError(PagewatchError):
    """Base class for errors that end one target's run for this cycle only.

    Attributes:
        url: Target URL of the pipeline that raised.
    """

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)


class WaitTimeoutError(CycleError):
    """Raised when a wait selector never became visible."""

    def __init__(self, url: str, selector: str) -> None:
        self.selector = selector
        super().__init__(url, f"Selector [{selector}] never became visible for URL [{url}]")


class ExtractionError(CycleError):
    """Raised when content cannot be extracted for a selector."""

    def __init__(self, url: str, selector: str, kind: str, reason: str) -> None:
        self.selector = selector
        self.kind = kind
        super().__init__(url, f"Could not extract {kind} for selector [{selector}] on [{url}]: {reason}")


class AccessDeniedError(CycleError):
    """Raised when the page title carries the access-denied marker."""

    def __init__(self, url: str, title: str, agent: str = "") -> None:
        self.title = title
        self.agent = agent
        super().__init__(url, f"Access denied for URL [{url}] (title [{title}], agent [{agent}])")


class CaptchaUnsolvedError(CycleError):
    """Raised when a CAPTCHA challenge loaded but the page is still blocked."""

    def __init__(self, url: str, location: str) -> None:
        self.location = location
        super().__init__(
            url,
            f"Captcha challenge loaded but unsolved for URL [{url}], still at [{location}]",
        )


class NotifyPathMatched(CycleError):
    """Raised after a notify-path match was reported, to stop the cycle's remaining steps."""

    def __init__(self, url: str, location: str, fragment: str) -> None:
        self.location = location
        self.fragment = fragment
        super().__init__(url, f"Location [{location}] for URL [{url}] matched notify path [{fragment}]")


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


class NotificationError(PagewatchError):
    """Raised by a notifier transport when an event could not be delivered."""

    def __init__(self, notifier: str, url: str, reason: str) -> None:
        self.notifier = notifier
        self.url = url
        self.reason = reason
        super().__init__(f"{notifier} notification for URL [{url}] failed: {reason}")
