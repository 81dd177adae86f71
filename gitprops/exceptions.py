"""Custom exception classes for git-commit-props.

Every error raised by the property pipeline derives from GitPropsError and
carries an error code plus a details dictionary so that a fatal failure can
be diagnosed (which directory was checked, which reference was requested)
without re-running in verbose mode.
"""

from typing import Optional, Dict, Any


class GitPropsError(Exception):
    """Base exception for all git-commit-props errors."""

    error_code: str = "ERR000"  # Override in subclasses

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, error_code: Optional[str] = None):
        """
        Initialize git-commit-props exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context
            error_code: Optional error code override
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def __str__(self) -> str:
        """Return string representation with error code and details."""
        parts = [f"[{self.error_code}] {self.message}"]
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)


class ConfigValidationError(GitPropsError):
    """Raised when the settings snapshot cannot be assembled.

    Examples:
        - abbrev_length that is zero or negative
        - non-positive native git timeout
        - include/exclude rule that is not a valid regular expression
        - required option (project name, project dir) missing
    """

    error_code = "CFG001"

    def __init__(self, message: str, config_path: Optional[str] = None, key: Optional[str] = None):
        """
        Initialize configuration validation error.

        Args:
            message: Description of validation failure
            config_path: Path to config file that failed validation
            key: Specific option key that caused the error
        """
        details = {}
        if config_path:
            details['config_path'] = config_path
        if key:
            details['config_key'] = key
        super().__init__(message, details)
        self.key = key


class ExtractionError(GitPropsError):
    """Raised when the external extractor reports a failure.

    Examples:
        - corrupt repository
        - unknown commit reference
        - native git exiting with a non-zero status
    """

    error_code = "EXT001"

    def __init__(
        self,
        message: str,
        extractor_type: Optional[str] = None,
        git_dir: Optional[str] = None,
        commit_ref: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        """
        Initialize extraction error.

        Args:
            message: Description of extraction failure
            extractor_type: Registered extractor name (native, embedded)
            git_dir: The .git directory that was inspected
            commit_ref: The commit reference that was evaluated
            original_error: Original exception that caused this error
        """
        details = {}
        if extractor_type:
            details['extractor_type'] = extractor_type
        if git_dir:
            details['git_dir'] = git_dir
        if commit_ref:
            details['commit_ref'] = commit_ref
        if original_error:
            details['original_error'] = str(original_error)
            details['error_type'] = type(original_error).__name__

        super().__init__(message, details)
        self.original_error = original_error


class MissingGitDirectoryError(ExtractionError):
    """Raised when the configured .git directory does not exist."""

    error_code = "EXT002"

    def __init__(self, git_dir: str, commit_ref: Optional[str] = None):
        super().__init__(
            f".git directory could not be found at {git_dir}",
            git_dir=git_dir,
            commit_ref=commit_ref,
        )


class ExtractionTimeoutError(ExtractionError):
    """Raised when a native git command exceeds the configured timeout."""

    error_code = "EXT003"

    def __init__(
        self,
        message: str,
        timeout_ms: Optional[int] = None,
        command: Optional[str] = None,
        git_dir: Optional[str] = None,
    ):
        super().__init__(message, extractor_type="native", git_dir=git_dir)
        if timeout_ms is not None:
            self.details['timeout_ms'] = timeout_ms
        if command:
            self.details['command'] = command


class PropertyFileError(GitPropsError):
    """Raised when a generated property file cannot be written or read.

    Examples:
        - output directory is not writable
        - unsupported output format
        - malformed JSON/YAML when reading back a file
    """

    error_code = "IO001"

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        output_format: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if file_path:
            details['file_path'] = file_path
        if output_format:
            details['output_format'] = output_format
        if original_error:
            details['original_error'] = str(original_error)
            details['error_type'] = type(original_error).__name__

        super().__init__(message, details)
        self.original_error = original_error


class TaskStateError(GitPropsError):
    """Raised when persisted up-to-date state cannot be read or written."""

    error_code = "STATE001"

    def __init__(
        self,
        message: str,
        state_file: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if state_file:
            details['state_file'] = state_file
        if original_error:
            details['original_error'] = str(original_error)
            details['error_type'] = type(original_error).__name__

        super().__init__(message, details)
        self.original_error = original_error
