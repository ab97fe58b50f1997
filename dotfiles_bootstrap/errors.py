from __future__ import annotations


class BootstrapError(RuntimeError):
    pass


class UnsupportedPlatform(BootstrapError):
    """No known OS family or package manager; nothing else can run."""


class InstallFailed(BootstrapError):
    pass


class FetchFailed(BootstrapError):
    pass


class NetworkUnavailable(FetchFailed):
    pass


class ChecksumOrExtractFailed(FetchFailed):
    pass


class LinkFailed(BootstrapError):
    pass


class ProfileWriteFailed(BootstrapError):
    pass


class ConfigError(ValueError):
    pass
