"""Render the cloud-init payload passed to each new droplet."""

from __future__ import annotations

from pathlib import Path

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
)

from workshop_fleet._errors import TemplateRenderError
from workshop_fleet._models import UserSpec

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
DEFAULT_TEMPLATE = TEMPLATES_DIR / "userdata.yaml.j2"


class UserDataRenderer:
    """Render a user's bootstrap payload from a Jinja2 template file."""

    def __init__(self, template_path: Path | None = None) -> None:
        path = template_path or DEFAULT_TEMPLATE
        self._env = Environment(
            loader=FileSystemLoader(str(path.parent)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )
        self._template_name = path.name
        self._template: Template | None = None

    def _load(self) -> Template:
        if self._template is None:
            try:
                self._template = self._env.get_template(self._template_name)
            except TemplateError as exc:
                msg = f"cannot load user data template {self._template_name}: {exc}"
                raise TemplateRenderError(msg) from exc
        return self._template

    def render(self, user: UserSpec) -> str:
        """Return the rendered payload for *user*.

        Raises
        ------
        TemplateRenderError
            If the template is missing, malformed, or references unknown data.
        """
        template = self._load()
        try:
            return template.render(
                user=user,
                identity=user.identity,
                hostname=user.resource_name,
                keys=list(user.keys),
            )
        except TemplateError as exc:
            msg = f"user data template failure for {user.identity}: {exc}"
            raise TemplateRenderError(msg) from exc
