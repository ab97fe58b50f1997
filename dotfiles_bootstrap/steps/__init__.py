from .step_10_probe_platform import ProbePlatformStep
from .step_20_install_packages import InstallPackagesStep
from .step_30_fetch_artifacts import FetchArtifactsStep
from .step_40_link_configs import LinkConfigsStep
from .step_50_edit_profile import EditProfileStep
from .step_60_install_fonts import InstallFontsStep
from .step_90_shell_handoff import ShellHandoffStep

__all__ = [
    "ProbePlatformStep",
    "InstallPackagesStep",
    "FetchArtifactsStep",
    "LinkConfigsStep",
    "EditProfileStep",
    "InstallFontsStep",
    "ShellHandoffStep",
]
