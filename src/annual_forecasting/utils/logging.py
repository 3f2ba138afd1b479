# stdlib
from pathlib import Path
from datetime import datetime
from typing import Optional
from types import TracebackType
# projectlib
from annual_forecasting.utils.paths import validate_address
from annual_forecasting.utils.typing import Verbosity, Address

class Logger(object):
    """
    Lightweight callable logger with optional file persistence.

    This class provides a minimal logging utility that supports
    verbosity-based message filtering and can either print messages
    to stdout or append them to a log file. Each pipeline component
    receives a named child of the caller's logger so that messages can
    be traced back to the cleaner, orchestrator, tuner, etc. without a
    full logging framework.
    """

    def __init__(
        self,
        verbose: Verbosity = 0,
        log_dir: Address = Path.cwd(),
        write_log: bool = False,
        name: Optional[str] = None,
    ) -> None:
        """
        Initialize the logger.

        Parameters
        ----------
        verbose : Verbosity, default 0
            Verbosity threshold. Messages with a verbosity level less
            than or equal to this value will be emitted.
        log_dir : Address, default Path.cwd()
            Directory in which the log file will be written if
            `write_log` is True. The file name is fixed as `log.txt`.
        write_log : bool, default False
            If True, messages are appended to a log file. If False,
            messages are printed to stdout.
        name : Optional[str], default None
            Component name prefixed to every message.
        """
        self.verbose = verbose
        self.log_dir = log_dir
        # Resolve and validate output path for the log file
        self.log_path = validate_address(log_dir) / "log.txt"
        # Toggle between stdout printing and file logging
        self.write_log = write_log
        self.name = name

    def __call__(self, msg: str, verbosity: int = 0) -> None:
        """
        Emit a log message if the verbosity threshold is met.

        This allows the logger instance to be used as a callable,
        e.g. `logger("message", verbosity=1)`.

        Parameters
        ----------
        msg : str
            Message to be logged.
        verbosity : int, default 0
            Verbosity level associated with the message. The message
            is emitted only if `self.verbose >= verbosity`.
        """
        if self.verbose >= verbosity:
            formatted = self._format(msg)
            if self.write_log:
                self.write(formatted)
            else:
                print(formatted)

    def warn(self, msg: str) -> None:
        """Emit a message regardless of verbosity, tagged as a warning."""
        self(f"[WARN] {msg}", verbosity=0)

    def child(self, name: str) -> "Logger":
        """
        Create a logger sharing this logger's sink and threshold.

        Parameters
        ----------
        name : str
            Component name. Nested names are joined with a dot.

        Returns
        -------
        Logger
            New logger writing to the same destination.
        """
        full = f"{self.name}.{name}" if self.name else name
        return Logger(
            verbose=self.verbose,
            log_dir=self.log_dir,
            write_log=self.write_log,
            name=full,
        )

    def write(self, msg: str) -> None:
        """
        Append a formatted message to the log file.

        Parameters
        ----------
        msg : str
            Message to append to the log file.
        """
        with open(self.log_path, "a", encoding="utf-8") as file:
            file.write(msg + "\n")

    def _format(self, msg: str) -> str:
        """
        Format a log message with a timestamp and component name.

        Parameters
        ----------
        msg : str
            Raw log message.

        Returns
        -------
        str
            Timestamp-prefixed log message.
        """
        ts = datetime.now().isoformat(timespec="seconds")
        if self.name:
            return f"[{ts}] [{self.name}] {msg}"
        return f"[{ts}] {msg}"

    def __enter__(self) -> "Logger":
        return self

    def __exit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
        ) -> None:
        pass
