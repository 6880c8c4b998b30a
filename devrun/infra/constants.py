"""Orchestration constants and configuration.

This module centralizes the magic strings, default filenames, images and
timing values used by the command groups.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RunConstants:
    """Constants for devrun orchestration.

    All attributes are class-level and immutable.
    """

    # meta.json
    META_FILENAME: str = "meta.json"
    SKIPPED_DIRECTORIES: tuple[str, ...] = ("node_modules", ".git", ".terraform")

    # Environment
    DEFAULT_TARGET: str = "local"
    DEFAULT_ENVIRONMENT: str = "default"
    PRODUCTION_BRANCH: str = "main"
    PRODUCTION_ENVIRONMENT: str = "prod"

    # Docker
    DEFAULT_COMPONENT: str = "default"
    DEFAULT_COMPOSE_FILE: str = "compose.yaml"
    SUPPORTED_ARCHITECTURES: tuple[str, ...] = ("amd64", "arm64")
    DEFAULT_MACHINE_TYPE: str = "e2-highcpu-32"
    CLOUD_BUILDER_IMAGE: str = "gcr.io/cloud-builders/docker"
    CONTAINER_POLL_INTERVAL: float = 5.0

    # Terraform
    DEFAULT_GCP_CREDENTIALS: str = "/tmp/gsa_key.json"
    TERRAFORM_LOCK_FILE: str = "default.tflock"
    ENV_BLOCK_START: str = "START ENV"
    ENV_BLOCK_END: str = "END ENV"
    ENV_FILE_BLOCK_START: str = "TERRAFORM"
    ENV_FILE_BLOCK_END: str = "THE END"
    TF_BANNER_WIDTH: int = 42
    ENV_FILE_BANNER_WIDTH: int = 79
    MAIN_TF_INDENT: int = 8

    # Hasura
    DEFAULT_HASURA_STATE: str = "container/state"
    DEFAULT_HASURA_ENDPOINT: str = "http://host.docker.internal:8081"
    DEFAULT_HASURA_HGE_ENDPOINT: str = "http://0.0.0.0:8081"
    DEFAULT_LOCAL_CONSOLE_PORT: str = "8085"
    DEFAULT_REMOTE_CONSOLE_PORT: str = "9695"
    HEALTH_POLL_INTERVAL: float = 10.0

    # GitHub Actions
    ACT_PLATFORM: str = "ubuntu-latest=ghcr.io/catthehacker/ubuntu:act-latest"
    ACT_CUSTOM_PLATFORM: str = "ubuntu-latest=ghcr.io/ghostmind-dev/act-base:latest"
    ACT_SECRETS: tuple[str, ...] = (
        "GH_TOKEN",
        "GITHUB_TOKEN",
        "VAULT_ROOT_TOKEN",
        "VAULT_ADDR",
    )
    WORKFLOW_RUN_SETTLE_SECONDS: float = 5.0

    # Vault
    VAULT_MOUNT: str = "kv"
    GLOBAL_VAULT_NAMESPACE: str = "GLOBAL/global"

    # Custom scripts
    DEFAULT_SCRIPTS_ROOT: str = "scripts"
    DEFAULT_TEST_ROOT: str = "test"

    # Remote templates
    CONFIG_BASE_URL: str = (
        "https://raw.githubusercontent.com/ghostmind-dev/config/main/config"
    )
    TEMPLATES_API_URL: str = (
        "https://api.github.com/repos/ghostmind-dev/templates/contents/templates"
    )

    # tmux pane backgrounds
    TMUX_COLORS: tuple[str, ...] = (
        "colour146",
        "colour152",
        "colour182",
        "colour189",
        "colour219",
        "colour151",
        "colour225",
        "colour194",
        "colour174",
        "colour223",
        "colour158",
        "colour195",
    )
