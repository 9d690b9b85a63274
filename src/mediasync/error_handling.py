"""Error taxonomy for the card sync pipeline."""

import logging
from enum import Enum
from pathlib import Path

from rich.console import Console

logger = logging.getLogger(__name__)
console = Console()


class ErrorCategory(Enum):
    """Categories of errors for better user experience."""

    CONFIGURATION = "configuration"
    CARD = "card"
    CATALOG = "catalog"
    STORAGE = "storage"
    MESSAGING = "messaging"
    NETWORK = "network"
    SYSTEM = "system"


CATEGORY_STYLES = {
    ErrorCategory.CONFIGURATION: ("⚙️", "yellow"),
    ErrorCategory.CARD: ("🗂️", "yellow"),
    ErrorCategory.CATALOG: ("🗄️", "red"),
    ErrorCategory.STORAGE: ("🪣", "blue"),
    ErrorCategory.MESSAGING: ("📨", "red"),
    ErrorCategory.NETWORK: ("🌐", "orange1"),
    ErrorCategory.SYSTEM: ("💻", "red"),
}


class SyncError(Exception):
    """Base exception for mediasync with enhanced user experience."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        *,
        solution: str | None = None,
        details: str | None = None,
        recoverable: bool = True,
        log_level: int = logging.ERROR,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.solution = solution
        self.details = details
        self.recoverable = recoverable
        self.log_level = log_level
        self.original_error = original_error

    def display_to_user(self) -> None:
        """Display error to user with helpful context."""
        emoji, color = CATEGORY_STYLES.get(self.category, ("❌", "red"))

        console.print(
            f"\n{emoji} [bold {color}]{self.category.value.title()} Error[/]",
        )
        console.print(f"[{color}]{self.message}[/{color}]")

        if self.details:
            console.print(f"\n[dim]Details:[/dim] {self.details}")

        if self.solution:
            console.print(f"\n[green]💡 Solution:[/green] {self.solution}")

        if self.recoverable:
            console.print(
                "\n[dim]The next scheduled run will pick this up again.[/dim]",
            )
        else:
            console.print(
                "\n[dim]This error requires intervention before continuing.[/dim]",
            )

        self.log()

    def log(self) -> None:
        """Log the error at its configured level."""
        if self.original_error:
            logger.log(
                self.log_level,
                "%s: %s",
                self.category.value,
                self.message,
                exc_info=self.original_error,
            )
        else:
            logger.log(self.log_level, "%s: %s", self.category.value, self.message)


class ConfigurationError(SyncError):
    """Configuration-related errors."""

    def __init__(self, message: str, *, config_path: Path | None = None, **kwargs):
        solution = kwargs.pop("solution", None)
        if not solution and config_path:
            solution = f"Check your configuration file at {config_path}"
        super().__init__(
            message,
            ErrorCategory.CONFIGURATION,
            solution=solution,
            recoverable=False,
            **kwargs,
        )


class CardError(SyncError):
    """A card could not be turned into a media descriptor."""

    def __init__(self, message: str, *, card_name: str | None = None, **kwargs):
        self.card_name = card_name
        super().__init__(message, ErrorCategory.CARD, **kwargs)


class RedundantCardSkipped(CardError):
    """Season sub-card of a show that already has its own card."""

    def __init__(self, card_name: str, **kwargs):
        super().__init__(
            f"skipping redundant season card '{card_name}'",
            card_name=card_name,
            log_level=logging.INFO,
            **kwargs,
        )


class MalformedDescriptionError(CardError):
    """Card description or attachments don't yield a valid descriptor."""

    def __init__(self, message: str, **kwargs):
        solution = kwargs.pop(
            "solution",
            "Add a [label](uri) source link and a TVDB, TMDB or IMDB attachment",
        )
        super().__init__(message, solution=solution, **kwargs)


class UnknownSourceSchemeError(CardError):
    """Source URI scheme doesn't map to a known source type."""

    def __init__(self, scheme: str, **kwargs):
        self.scheme = scheme
        solution = kwargs.pop(
            "solution",
            "Use a magnet, http(s) or file link in the card description",
        )
        super().__init__(
            f"invalid scheme '{scheme}'",
            solution=solution,
            **kwargs,
        )


class PersistenceError(SyncError):
    """Catalog write failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.CATALOG, **kwargs)


class ObjectStoreError(SyncError):
    """Listing the object store failed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.STORAGE, **kwargs)


class NoFilesFoundError(SyncError):
    """Discovery found no qualifying media files."""

    def __init__(self, prefix: str, **kwargs):
        self.prefix = prefix
        super().__init__(
            f"failed to find any media files under '{prefix}'",
            ErrorCategory.STORAGE,
            **kwargs,
        )


class PublishError(SyncError):
    """A discovery event could not be serialized or published."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.MESSAGING, **kwargs)


class CardSourceError(SyncError):
    """The card list could not be retrieved at all."""

    def __init__(self, message: str, **kwargs):
        solution = kwargs.pop(
            "solution",
            "Check the Trello credentials and list id in your configuration",
        )
        super().__init__(
            message,
            ErrorCategory.NETWORK,
            solution=solution,
            recoverable=False,
            log_level=logging.CRITICAL,
            **kwargs,
        )


def handle_error(
    error: Exception,
    *,
    category: ErrorCategory | None = None,
    **kwargs,
) -> None:
    """Convert generic exceptions to SyncError and display to user."""
    if isinstance(error, SyncError):
        error.display_to_user()
        return

    if category is None:
        if isinstance(error, ConnectionError | TimeoutError):
            category = ErrorCategory.NETWORK
        else:
            category = ErrorCategory.SYSTEM

    sync_error = SyncError(
        message=str(error) or "An unexpected error occurred",
        category=category,
        original_error=error,
        **kwargs,
    )
    sync_error.display_to_user()
