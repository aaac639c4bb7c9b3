"""
Error types raised by lazyjack drivers and commands.
Типы ошибок, которые выбрасывают драйверы и команды lazyjack.
"""

SKIP_PREFIX = "skipping - "


class LazyJackError(Exception):
    """Base class for all expected failures."""


class ConfigError(LazyJackError):
    """Invalid or inconsistent configuration file."""


class UnsupportedError(LazyJackError):
    """Unknown command or unsupported option."""


class NotPresentError(LazyJackError):
    """A resource that was expected is not there."""


class NotFoundError(NotPresentError):
    """Delete of something that does not exist."""


class AlreadyExistsError(LazyJackError):
    """Add of something that is already there."""


class SkippingError(LazyJackError):
    """
    Non-fatal condition, the step was skipped.
    Нефатальная ситуация, шаг пропущен.
    """

    def __init__(self, message):
        if not message.startswith(SKIP_PREFIX):
            message = SKIP_PREFIX + message
        super().__init__(message)


class FileOpError(LazyJackError):
    """Filesystem operation failed."""


class ExecError(LazyJackError):
    """
    External binary exited with non-zero status.
    Внешняя программа завершилась с ненулевым кодом.
    """

    def __init__(self, message, cmd=None, args=None, returncode=None, output=""):
        super().__init__(message)
        self.cmd = cmd
        self.args_list = list(args or [])
        self.returncode = returncode
        self.output = output


class TranslationError(LazyJackError):
    """Output of an external tool could not be parsed."""


class CompositeError(LazyJackError):
    """
    Two (or more) failures reported together.
    Несколько ошибок, собранных в одну.
    """

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


def is_skipping(err):
    return isinstance(err, SkippingError) or str(err).startswith(SKIP_PREFIX)
