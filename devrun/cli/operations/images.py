"""Docker image registration.

This module handles the image workflows of an app's docker components:
- Resolving image names, tags, Dockerfile and context from meta.json
- Building and pushing single-architecture images with buildx
- Assembling per-tag manifest lists that span amd64 and arm64 pushes
- Delegating the same steps to Cloud Build
- Looking up pushed image digests for terraform
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from loguru import logger

from devrun.cli.shell_commands.types import ImageReference
from devrun.infra.constants import RunConstants
from devrun.infra.environment import current_environment
from devrun.infra.errors import RunError
from devrun.infra.meta import require_meta

if TYPE_CHECKING:
    from devrun.cli.shared.console import CLIConsole
    from devrun.cli.shell_commands import ShellCommands

_ATTESTATION_ENV = {"BUILDX_NO_DEFAULT_ATTESTATIONS": "1"}


@dataclass
class RegisterOptions:
    """Options of a multi-architecture registration.

    Attributes:
        amd64: Build for linux/amd64
        arm64: Build for linux/arm64
        cloud: Delegate the build to Cloud Build
        cache: Allow the buildx layer cache (``--no-cache`` when False)
        build_args: ``KEY=VALUE`` entries passed as ``--build-arg``
        machine_type: Cloud Build machine type
        modifier: Tag modifier appended to the environment tag
        skip_tag_modifiers: Push only the primary tag
        tags: Extra tag modifiers on top of the meta.json ones
    """

    amd64: bool = False
    arm64: bool = False
    cloud: bool = False
    cache: bool = True
    build_args: list[str] = field(default_factory=list)
    machine_type: str = RunConstants.DEFAULT_MACHINE_TYPE
    modifier: str | None = None
    skip_tag_modifiers: bool = False
    tags: list[str] = field(default_factory=list)

    def architecture(self) -> str:
        """Return the single selected architecture.

        Raises:
            RunError: If zero or both architectures are selected
        """
        if self.amd64 and self.arm64:
            raise RunError("Only one architecture can be specified")
        if self.amd64:
            return "amd64"
        if self.arm64:
            return "arm64"
        raise RunError(
            "No architecture specified",
            details="Pass --amd64 or --arm64 to choose the target platform.",
        )


@dataclass
class ManifestPlan:
    """A manifest list to create from per-architecture images."""

    name: str
    sources: list[str]

    def create_args(self) -> list[str]:
        return ["docker", "manifest", "create", "--amend", self.name, *self.sources]

    def push_args(self) -> list[str]:
        return ["docker", "manifest", "push", self.name]


def _usable_modifier(value: str | None) -> bool:
    return bool(value) and value != "undefined"


class ImageRegistrar:
    """Builds, pushes and inspects the images of an app's docker components.

    Attributes:
        commands: Shell command executor
        console: CLI console for output
        cwd: App directory holding meta.json
        constants: Orchestration constants
    """

    def __init__(
        self,
        commands: ShellCommands,
        console: CLIConsole,
        cwd: Path,
        constants: RunConstants | None = None,
    ) -> None:
        self.commands = commands
        self.console = console
        self.cwd = cwd
        self.constants = constants or RunConstants()

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve(
        self,
        component: str | None = None,
        *,
        modifier: str | None = None,
        skip_tag_modifiers: bool = False,
        extra_tags: Sequence[str] = (),
    ) -> ImageReference:
        """Resolve image, tags, Dockerfile and context for a docker component."""
        meta = require_meta(self.cwd)
        config = meta.docker_component(component or self.constants.DEFAULT_COMPONENT)
        environment = current_environment()

        image = f"{config.image}:{environment}"
        if _usable_modifier(modifier):
            image = f"{image}-{modifier}"

        tags_to_push = [image]
        if not skip_tag_modifiers:
            for tag in [*config.tag_modifiers, *extra_tags]:
                if _usable_modifier(tag):
                    tags_to_push.append(f"{image}-{tag}")

        root = self.cwd / config.root
        dockerfile_name = (
            f"Dockerfile.{environment}" if config.env_based else "Dockerfile"
        )
        context = self.cwd / config.context_dir if config.context_dir else root

        return ImageReference(
            image=image,
            tags_to_push=tags_to_push,
            dockerfile=str(root / dockerfile_name),
            context=str(context),
        )

    # =========================================================================
    # Build and digest
    # =========================================================================

    def build(self, component: str | None = None) -> ImageReference:
        """Build the component image locally with the classic builder."""
        reference = self.resolve(component)
        self.console.info(f"Building {reference.image}")
        result = self.commands.docker.build(
            reference.dockerfile, reference.image, reference.context, cwd=self.cwd
        )
        if not result.success:
            raise RunError(f"docker build failed for {reference.image}")
        self.console.ok(f"Built {reference.image}")
        return reference

    def digest(
        self,
        arch: str | None = None,
        component: str | None = None,
        modifier: str | None = None,
    ) -> str:
        """Return the pushed digest reference (``repo@sha256:...``) of an image.

        Raises:
            RunError: If the digest cannot be found
        """
        reference = self.resolve(component, modifier=modifier)

        if arch in self.constants.SUPPORTED_ARCHITECTURES:
            manifest = self.commands.docker.manifest_inspect_verbose(
                f"{reference.image}-{arch}"
            )
            digest = _find_platform_digest(manifest, arch)
            if digest is None:
                raise RunError(f"No {arch} digest found for {reference.image}")
            return f"{reference.repository}@{digest}"

        digest_ref = self.commands.docker.repo_digest(reference.image)
        if digest_ref is None:
            raise RunError(f"No digest found for {reference.image}")
        return digest_ref

    # =========================================================================
    # Registration
    # =========================================================================

    def build_command(
        self,
        reference: ImageReference,
        arch: str,
        options: RegisterOptions,
        *,
        relative: bool = False,
    ) -> list[str]:
        """Assemble the ``docker buildx build --push`` vector."""
        dockerfile = reference.dockerfile
        context = reference.context
        if relative:
            dockerfile = os.path.relpath(dockerfile, self.cwd)
            context = os.path.relpath(context, self.cwd)

        cmd = [
            "docker",
            "buildx",
            "build",
            f"--platform=linux/{arch}",
            f"--file={dockerfile}",
            "--push",
        ]
        if not options.cache:
            cmd.append("--no-cache")
        cmd.extend(f"--build-arg={arg}" for arg in options.build_args)
        for tag in reference.tags_to_push:
            cmd.extend([f"--tag={tag}", f"--tag={tag}-{arch}"])
        cmd.append(context)
        return cmd

    def manifest_plans(self, reference: ImageReference, arch: str) -> list[ManifestPlan]:
        """Plan one manifest list per pushed tag.

        When the other architecture has already been pushed for a tag, the
        manifest references both images; otherwise only the one being built.
        """
        other = "arm64" if arch == "amd64" else "amd64"
        plans: list[ManifestPlan] = []
        for tag in reference.tags_to_push:
            if self.commands.docker.manifest_exists(f"{tag}-{other}", env=_ATTESTATION_ENV):
                sources = [f"{tag}-arm64", f"{tag}-amd64"]
            else:
                sources = [f"{tag}-{arch}"]
            plans.append(ManifestPlan(name=tag, sources=sources))
        return plans

    def register(
        self, component: str | None = None, options: RegisterOptions | None = None
    ) -> ImageReference:
        """Build, push and publish the multi-arch manifests of a component.

        Raises:
            RunError: If the options are invalid or any step fails
        """
        options = options or RegisterOptions()
        arch = options.architecture()
        reference = self.resolve(
            component,
            modifier=options.modifier,
            skip_tag_modifiers=options.skip_tag_modifiers,
            extra_tags=options.tags,
        )
        logger.debug(f"Registering {reference.tags_to_push} for {arch}")

        if options.cloud:
            self._register_in_cloud(reference, arch, options)
        else:
            self._register_locally(reference, arch, options)
        return reference

    def _register_locally(
        self, reference: ImageReference, arch: str, options: RegisterOptions
    ) -> None:
        if not self.commands.docker.use_builder("default", env=_ATTESTATION_ENV).success:
            raise RunError(
                "Default buildx builder not found",
                details="Create it with 'docker buildx create --name default'.",
            )

        self.console.info(f"Building {reference.image} for linux/{arch}")
        build = self.commands.docker.buildx_build(
            self.build_command(reference, arch, options),
            cwd=self.cwd,
            env=_ATTESTATION_ENV,
        )
        if not build.success:
            raise RunError(f"docker buildx build failed for {reference.image}")

        for plan in self.manifest_plans(reference, arch):
            created = self.commands.docker.manifest_create(
                plan.name, plan.sources, env=_ATTESTATION_ENV
            )
            if not created.success:
                raise RunError(f"docker manifest create failed for {plan.name}")
            pushed = self.commands.docker.manifest_push(plan.name, env=_ATTESTATION_ENV)
            if not pushed.success:
                raise RunError(f"docker manifest push failed for {plan.name}")
            self.console.ok(f"Pushed manifest {plan.name}")

    def cloud_build_config(
        self, reference: ImageReference, arch: str, options: RegisterOptions
    ) -> dict[str, Any]:
        """Render the Cloud Build configuration for a registration."""
        steps: list[dict[str, Any]] = [
            {
                "name": self.constants.CLOUD_BUILDER_IMAGE,
                "script": "docker buildx create --use",
            },
            {
                "name": self.constants.CLOUD_BUILDER_IMAGE,
                "script": " ".join(
                    self.build_command(reference, arch, options, relative=True)
                ),
            },
        ]
        for plan in self.manifest_plans(reference, arch):
            steps.append(
                {
                    "name": self.constants.CLOUD_BUILDER_IMAGE,
                    "script": " ".join(plan.create_args()),
                }
            )
            steps.append(
                {
                    "name": self.constants.CLOUD_BUILDER_IMAGE,
                    "script": " ".join(plan.push_args()),
                }
            )
        return {
            "options": {"env": [f"{k}={v}" for k, v in _ATTESTATION_ENV.items()]},
            "steps": steps,
        }

    def _register_in_cloud(
        self, reference: ImageReference, arch: str, options: RegisterOptions
    ) -> None:
        config = self.cloud_build_config(reference, arch, options)

        fd, name = tempfile.mkstemp(prefix="cloud_build.", suffix=".yaml")
        config_file = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                yaml.safe_dump(config, handle, sort_keys=False)

            self.console.info(
                f"Submitting {reference.image} ({arch}) to Cloud Build "
                f"on {options.machine_type}"
            )
            result = self.commands.gcloud.builds_submit(
                config_file, options.machine_type, cwd=self.cwd
            )
        finally:
            config_file.unlink(missing_ok=True)

        if not result.success:
            raise RunError(f"Cloud Build failed for {reference.image}")
        self.console.ok(f"Cloud Build pushed {reference.image}")


def _find_platform_digest(manifest: Any, arch: str) -> str | None:
    """Pick the digest for ``arch`` out of verbose manifest output."""
    if manifest is None:
        return None
    entries = manifest if isinstance(manifest, list) else [manifest]
    for entry in entries:
        descriptor = entry.get("Descriptor", {}) if isinstance(entry, dict) else {}
        platform = descriptor.get("platform", {})
        if platform.get("architecture") == arch and descriptor.get("digest"):
            return descriptor["digest"]
    return None
