# clipbot/errors.py
from __future__ import annotations


class ClipbotError(RuntimeError):
    """Base class for every failure a job or the bootstrap can report."""

    user_message = "Failed to convert video."


class UnsupportedFormat(ClipbotError):
    user_message = "File format not supported."


class MissingInput(ClipbotError):
    user_message = "Input file does not exist."


# ------------ Download ------------
class DownloadError(ClipbotError):
    user_message = "Failed to download file."


class HandleResolutionFailure(DownloadError):
    pass


class TransferFailure(DownloadError):
    pass


class PersistFailure(DownloadError):
    pass


# ------------ Engine ------------
class EngineUnavailable(ClipbotError):
    pass


class ProbeFailure(ClipbotError):
    pass


class ConversionFailure(ClipbotError):
    pass


# Logged only; there is no channel left to report it on.
class ReplyFailure(ClipbotError):
    pass


# ------------ Startup ------------
class StartupError(ClipbotError):
    pass


class MissingCredential(StartupError):
    pass


class AuthenticationFailure(StartupError):
    pass
