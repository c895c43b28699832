# src/pipeline/transformers/frontmatter.py — v1
"""Front matter transformer: YAML header -> frontmatter, title, tags, aliases."""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

import yaml

from quillpress.core.errors import ParseError
from quillpress.core.models import ProcessedContent
from quillpress.pipeline.plugin_kit.base_plugin import Transformer
from quillpress.pipeline.transformers.text_utils import normalize_tag, unique

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\n(?:(.*?)\n)?(?:---|\.\.\.)[ \t]*(?:\n|\Z)", re.DOTALL)


def _as_list(value: Any) -> list[str]:
    """Accept a list, a comma-separated string, or a scalar."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def _json_safe(data: dict[str, Any]) -> dict[str, Any]:
    """Coerce YAML values (dates, sets) into plain JSON types.

    Cached content is stored as JSON; normalizing here keeps a freshly
    transformed document equal to the one read back from the cache.
    """
    return json.loads(json.dumps(data, default=str, sort_keys=True))


class FrontMatterTransformer(Transformer):
    """Parse a leading ``---`` YAML block.

    Options:
        tag_keys: Front matter keys holding tags, in priority order.
        alias_keys: Front matter keys holding aliases.
    """

    default_options = {
        "tag_keys": ["tags", "tag"],
        "alias_keys": ["aliases", "alias"],
    }

    @property
    def name(self) -> str:
        return "frontmatter"

    def transform(self, ctx: BuildContext, content: ProcessedContent) -> ProcessedContent:
        match = _FRONTMATTER_RE.match(content.raw_text)
        if match is None:
            return content

        try:
            data = yaml.safe_load(match.group(1) or "")
        except yaml.YAMLError as exc:
            raise ParseError(
                f"Invalid front matter: {exc}", file_path=content.file_path
            ) from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ParseError(
                f"Front matter must be a mapping, got {type(data).__name__}",
                file_path=content.file_path,
            )
        data = _json_safe({str(k): v for k, v in data.items()})

        tags = list(content.tags)
        for key in self._options["tag_keys"]:
            tags.extend(normalize_tag(t) for t in _as_list(data.get(key)))
        aliases = list(content.aliases)
        for key in self._options["alias_keys"]:
            aliases.extend(_as_list(data.get(key)))

        title = data.get("title")
        return content.with_updates(
            raw_text=content.raw_text[match.end():],
            frontmatter=data,
            title=str(title).strip() if title not in (None, "") else content.title,
            tags=unique(tags),
            aliases=unique(aliases),
        )
