# core/template_resolver.py
"""
Selection and rendering of subscription notification templates.

Every notification kind has a built-in pair:
    subscription/mail-<kind>-text.txt    plain text
    subscription/mail-<kind>-html.html   html, extends subscription/layout.html

A list whose default form carries custom templates uses those instead; the
custom html body is wrapped in the same layout. Custom templates are
operator-authored and compiled in a sandbox. Anything wrong with a custom
template (missing, store error, syntax, security or render error) falls
back to the built-in pair and is only logged.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, TemplateError, select_autoescape
from jinja2.sandbox import SandboxedEnvironment

from core.config import settings
from models.field_model import ListInfo

logger = logging.getLogger(__name__)

LAYOUT_TEMPLATE = "subscription/layout.html"

SOURCE_DEFAULT = "default"
SOURCE_OVERRIDE = "override"

CONTENT_PLAIN = "plain"
CONTENT_RICH_HTML = "rich-html"


class OverrideStore(Protocol):
    async def resolve_override(self, form_id: str, kind: str) -> Optional[Dict[str, str]]:
        ...


@dataclass
class TemplatePair:
    kind: str
    text: Template
    html: Template
    source: str = SOURCE_DEFAULT
    text_type: str = CONTENT_PLAIN
    html_type: str = CONTENT_RICH_HTML


def create_environment(template_dir: Optional[str] = None) -> Environment:
    return Environment(
        loader=FileSystemLoader(template_dir or settings.SUBSCRIPTION_TEMPLATE_DIR),
        autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def create_override_environment(environment: Environment) -> SandboxedEnvironment:
    """Sandbox for custom templates, sharing the loader so the layout can be extended"""
    return SandboxedEnvironment(
        loader=environment.loader,
        autoescape=environment.autoescape,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


class TemplateResolver:
    """Picks the list's custom templates or the built-in ones"""

    def __init__(self, override_store: Optional[OverrideStore] = None, environment: Optional[Environment] = None):
        self.override_store = override_store
        self.env = environment or create_environment()
        self.override_env = create_override_environment(self.env)

    def default_pair(self, kind: str) -> TemplatePair:
        return TemplatePair(
            kind=kind,
            text=self.env.get_template(f"subscription/mail-{kind}-text.txt"),
            html=self.env.get_template(f"subscription/mail-{kind}-html.html"),
            source=SOURCE_DEFAULT,
        )

    def _compile_override(self, kind: str, override: Dict[str, str]) -> TemplatePair:
        html_source = override.get("html")
        text_source = override.get("text")
        if not html_source or not text_source:
            raise TemplateError(f"custom templates for {kind} are incomplete")

        wrapped_html = (
            '{% extends "' + LAYOUT_TEMPLATE + '" %}'
            "{% block content %}{% autoescape true %}"
            + html_source +
            "{% endautoescape %}{% endblock %}"
        )
        return TemplatePair(
            kind=kind,
            text=self.override_env.from_string(text_source),
            html=self.override_env.from_string(wrapped_html),
            source=SOURCE_OVERRIDE,
        )

    async def resolve(self, mailing_list: ListInfo, kind: str) -> TemplatePair:
        """Never raises because of a custom template"""
        if mailing_list.default_form and self.override_store is not None:
            try:
                override = await self.override_store.resolve_override(mailing_list.default_form, kind)
                if override:
                    return self._compile_override(kind, override)
                logger.debug(f"No custom {kind} templates for list {mailing_list.id}")
            except Exception as e:
                logger.warning(
                    f"Custom {kind} templates of list {mailing_list.id} "
                    f"(form {mailing_list.default_form}) unusable, using defaults: {e}"
                )

        return self.default_pair(kind)

    def render(self, pair: TemplatePair, data: Dict[str, Any]) -> Tuple[str, str, str]:
        """Returns (html, text, source); custom templates that fail to render fall back"""
        if pair.source == SOURCE_OVERRIDE:
            try:
                return pair.html.render(**data), pair.text.render(**data), pair.source
            except Exception as e:
                logger.warning(f"Rendering custom {pair.kind} templates failed, using defaults: {e}")
                pair = self.default_pair(pair.kind)

        return pair.html.render(**data), pair.text.render(**data), pair.source
