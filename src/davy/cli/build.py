"""Build operations for davy.

Decides whether the sandbox image needs building and runs docker build.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from rich.console import Console

from .. import docker
from ..config import BuildPolicy
from ..errors import ImageNotFoundError
from ..invocation import get_docker_build_cmd
from ..logging import get_logger

if TYPE_CHECKING:
    from ..config import SandboxConfig

console = Console(stderr=True, highlight=False)
logger = get_logger(__name__)


def needs_build(policy: BuildPolicy, image: str, image_present: bool | None) -> bool:
    """Decide whether to build.

    Args:
        policy: Selected build policy.
        image: Image name, for the error message.
        image_present: Result of the local image probe (ignored for REBUILD).

    Raises:
        ImageNotFoundError: Under NEVER when the image is absent.
    """
    if policy is BuildPolicy.REBUILD:
        return True
    if image_present:
        return False
    if policy is BuildPolicy.NEVER:
        raise ImageNotFoundError(f"image '{image}' not found (and --no-build was set)")
    return True


def build_image(config: SandboxConfig, *, pull: bool = False, no_cache: bool = False) -> None:
    """Build the sandbox image, streaming progress to the terminal.

    Raises:
        DockerCommandError: If docker build fails.
    """
    console.print(f"[bold]Building {config.image} from {config.dockerfile}...[/bold]")

    env = os.environ.copy()
    env["DOCKER_BUILDKIT"] = "1"

    docker.run_checked(
        get_docker_build_cmd(config, pull=pull, no_cache=no_cache),
        "docker build",
        timeout=None,
        capture_output=False,
        env=env,
    )
    console.print(f"[green]✓ Built {config.image}[/green]")


def ensure_image_ready(config: SandboxConfig) -> bool:
    """Ensure the image exists, building it at most once.

    Returns:
        True if a build ran.
    """
    policy = config.build_policy
    present = None if policy is BuildPolicy.REBUILD else docker.image_exists(config.image)
    if not needs_build(policy, config.image, present):
        logger.debug("Image %s present, no build needed", config.image)
        return False

    rebuild = policy is BuildPolicy.REBUILD
    build_image(config, pull=rebuild, no_cache=rebuild)
    return True
