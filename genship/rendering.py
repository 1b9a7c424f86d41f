"""Jinja2 rendering of the per-stack text artefacts.

Provides the TemplateRenderer class which loads ``.j2`` templates from the
``genship/templates/`` directory and renders the documentation, README,
install script and Dockerfile for a stack profile.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from genship.stacks import STACK_PROFILES, StackProfile, exposed_ports

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Renders the stack-specific text artefacts from Jinja2 templates."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    # -- Stack artefacts ---------------------------------------------------

    def _base_context(self, profile: StackProfile) -> dict[str, Any]:
        return {
            "project_title": "Generated by genship",
            "stack": profile.stack.value,
            "display_name": profile.display_name,
            "language": profile.language,
            "default_filename": profile.default_filename,
            "install_commands": list(profile.install_commands),
            "start_command": profile.start_command,
        }

    def documentation(self, profile: StackProfile) -> str:
        """Project documentation attached to a generation result."""
        return self.render("documentation.md.j2", self._base_context(profile))

    def install_script(self, profile: StackProfile) -> str:
        """Bash install script for the stack."""
        return self.render("install.sh.j2", self._base_context(profile))

    def readme(
        self,
        profile: StackProfile,
        filenames: list[str],
        generated_at: datetime | None = None,
    ) -> str:
        """README placed at the root of a download archive."""
        context = self._base_context(profile)
        context["filenames"] = filenames
        context["generated_at"] = (generated_at or datetime.now(timezone.utc)).isoformat()
        return self.render("README.md.j2", context)

    def dockerfile(self, profile: StackProfile) -> str:
        """Dockerfile for the stack, composing sub-recipes for composite stacks."""
        recipe = profile.recipe
        if profile.components:
            components = []
            for subdir, component_stack in profile.components:
                sub = STACK_PROFILES[component_stack].recipe
                components.append({
                    "workdir": f"{recipe.workdir}/{subdir}",
                    "prefix": f"{subdir}/",
                    "manifest": sub.manifest,
                    "install": list(sub.install),
                    "build": list(sub.build),
                })
        else:
            components = [{
                "workdir": recipe.workdir,
                "prefix": "",
                "manifest": recipe.manifest,
                "install": list(recipe.install),
                "build": list(recipe.build),
            }]

        return self.render("Dockerfile.j2", {
            "base_image": recipe.base_image,
            "workdir": recipe.workdir,
            "components": components,
            "ports": exposed_ports(profile),
            "cmd_json": json.dumps(list(recipe.cmd)),
        })
