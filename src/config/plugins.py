# src/config/plugins.py — v1
"""Declarative plugin configuration.

Ordered descriptor list consumed by PluginManager.load(). Transformers
run in the order listed here; filters and emitters keep list order too.
A build may pass its own list instead of DEFAULT_PLUGINS.
"""

from __future__ import annotations

from quillpress.pipeline.plugin_kit.models import PluginDescriptor, PluginKind

_T = "quillpress.pipeline.transformers"
_F = "quillpress.pipeline.filters"
_E = "quillpress.pipeline.emitters"

DEFAULT_PLUGINS: list[PluginDescriptor] = [
    # Transformers (order matters: each receives the previous output)
    PluginDescriptor(
        name="frontmatter",
        kind=PluginKind.TRANSFORMER,
        class_path=f"{_T}.frontmatter.FrontMatterTransformer",
    ),
    PluginDescriptor(
        name="inline_tags",
        kind=PluginKind.TRANSFORMER,
        class_path=f"{_T}.inline_tags.InlineTagsTransformer",
    ),
    PluginDescriptor(
        name="crawl_links",
        kind=PluginKind.TRANSFORMER,
        class_path=f"{_T}.crawl_links.CrawlLinksTransformer",
    ),
    PluginDescriptor(
        name="markdown",
        kind=PluginKind.TRANSFORMER,
        class_path=f"{_T}.markdown_html.MarkdownTransformer",
    ),
    PluginDescriptor(
        name="description",
        kind=PluginKind.TRANSFORMER,
        class_path=f"{_T}.description.DescriptionTransformer",
    ),
    # Filters
    PluginDescriptor(
        name="remove_drafts",
        kind=PluginKind.FILTER,
        class_path=f"{_F}.remove_drafts.RemoveDraftsFilter",
    ),
    PluginDescriptor(
        name="explicit_publish",
        kind=PluginKind.FILTER,
        class_path=f"{_F}.explicit_publish.ExplicitPublishFilter",
        enabled=False,
    ),
    # Emitters
    PluginDescriptor(
        name="content_page",
        kind=PluginKind.EMITTER,
        class_path=f"{_E}.content_page.ContentPageEmitter",
    ),
    PluginDescriptor(
        name="tag_page",
        kind=PluginKind.EMITTER,
        class_path=f"{_E}.tag_page.TagPageEmitter",
    ),
    PluginDescriptor(
        name="content_index",
        kind=PluginKind.EMITTER,
        class_path=f"{_E}.content_index.ContentIndexEmitter",
    ),
    PluginDescriptor(
        name="alias_redirects",
        kind=PluginKind.EMITTER,
        class_path=f"{_E}.alias_redirects.AliasRedirectsEmitter",
    ),
    PluginDescriptor(
        name="static_resources",
        kind=PluginKind.EMITTER,
        class_path=f"{_E}.static_resources.StaticResourcesEmitter",
    ),
    PluginDescriptor(
        name="assets",
        kind=PluginKind.EMITTER,
        class_path=f"{_E}.assets.AssetsEmitter",
    ),
]


def default_plugins(**options: dict[str, object]) -> list[PluginDescriptor]:
    """Return DEFAULT_PLUGINS with per-plugin option overrides applied.

    Args:
        **options: Mapping of plugin name to option overrides, e.g.
            ``markdown={"smart_quotes": False}``.
    """
    result: list[PluginDescriptor] = []
    for descriptor in DEFAULT_PLUGINS:
        override = options.get(descriptor.name)
        if override:
            descriptor = descriptor.model_copy(
                update={"options": {**descriptor.options, **override}}
            )
        result.append(descriptor)
    return result
