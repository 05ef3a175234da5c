"""Constants module for davy.

Container paths, defaults and environment variable names are defined here (SSOT).
"""

from __future__ import annotations

# === Docker Timeouts (seconds) ===
DOCKER_COMMAND_TIMEOUT = 30  # Quick docker commands (info, inspect, volume create)
VOLUME_INIT_TIMEOUT = 120  # One-shot container that prepares the auth volume

# === Naming ===
PROG_NAME = "davy"
DEFAULT_IMAGE = "davy-sandbox:latest"
CONTAINER_PREFIX = "davy"  # davy-<project>-<timestamp>
CONTAINER_NAME_TIME_FORMAT = "%Y%m%d-%H%M%S"
CLAUDE_VOLUME_PREFIX = "davy-claude-auth"
CLAUDE_VOLUME_VERSION = "v1"  # Bump when the volume layout changes

# === Host paths ===
CONFIG_DIR = "~/.config/davy"
DOCKERFILE_CANDIDATES = ("rocky.Dockerfile", "debian.Dockerfile")  # Checked in order
DEFAULT_DOCKER_SOCK = "/var/run/docker.sock"
SSH_DIR = "~/.ssh"

# === Container paths ===
CONTAINER_USER = "dev"
CONTAINER_HOME = "/home/dev"
CONTAINER_PROJECT_DIR = "/project"
CONTAINER_DOCKER_SOCK = "/var/run/docker.sock"
CONTAINER_CLAUDE_AUTH_DIR = "/home/dev/.claude-auth"
CONTAINER_SSH_PORT = 22
DEFAULT_SSH_PORT = 222
DEFAULT_SHELL = "bash"

# === Environment variables ===
ENV_IMAGE = "DAVY_IMAGE"
ENV_DOCKERFILE = "DAVY_DOCKERFILE"
ENV_DOCKER_SOCK = "DAVY_DOCKER_SOCK"
ENV_DOCKER_HOST = "DOCKER_HOST"
ENV_CLAUDE_AUTH_VOLUME = "DAVY_CLAUDE_AUTH_VOLUME"
ENV_SSH_AUTHORIZED_KEYS_FILE = "DAVY_SSH_AUTHORIZED_KEYS_FILE"
ENV_SSH_AUTH_KEYS_B64 = "DAVY_SSH_AUTH_KEYS_B64"  # Read by the in-container bootstrap
ENV_DEBUG = "DAVY_DEBUG"
