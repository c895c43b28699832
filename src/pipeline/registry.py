# src/pipeline/registry.py — v1
"""Plugin manager: registration, dynamic loading and staged execution.

Plugins are kept per capability (transformer, filter, emitter) in
registration order. Dispatch is by the plugin's ``kind`` tag; a plugin
only ever receives the calls of its own capability.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

from quillpress.cache.fingerprint import compute_config_hash
from quillpress.core.errors import BuildAbortError, PluginExecutionError
from quillpress.core.models import ProcessedContent
from quillpress.core.paths import FilePath
from quillpress.logging.context import file_context, plugin_context
from quillpress.pipeline.plugin_kit.base_plugin import (
    BasePlugin,
    Emitter,
    Filter,
    Transformer,
)
from quillpress.pipeline.plugin_kit.models import (
    EmitOutcome,
    ExecutionOutcome,
    FilterOutcome,
    PluginDescriptor,
    PluginKind,
)
from quillpress.pipeline.recovery import with_recovery
from quillpress.pipeline.resources import ResourceLoader
from quillpress.tracking.build_stats import failure_from_exception

if TYPE_CHECKING:
    from quillpress.pipeline.context import BuildContext

logger = logging.getLogger(__name__)

_KIND_CLASS: dict[PluginKind, type[BasePlugin]] = {
    PluginKind.TRANSFORMER: Transformer,
    PluginKind.FILTER: Filter,
    PluginKind.EMITTER: Emitter,
}


class RegistryError(Exception):
    """Raised when plugin loading or registration fails."""


class PluginManager:
    """Ordered registry and executor for the three plugin kinds."""

    def __init__(self) -> None:
        self._plugins: dict[PluginKind, dict[str, BasePlugin]] = {
            kind: {} for kind in PluginKind
        }

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, plugin: BasePlugin) -> None:
        """Add a plugin under its capability.

        Re-registering a name replaces the previous instance in place, so
        the plugin keeps its original position in the run order.
        """
        kind = getattr(plugin, "kind", None)
        if kind not in _KIND_CLASS or not isinstance(plugin, _KIND_CLASS[kind]):
            raise RegistryError(f"{plugin!r} is not a Transformer, Filter or Emitter")
        bucket = self._plugins[kind]
        if plugin.name in bucket:
            logger.warning("Replacing existing %s: %s", kind.value, plugin.name)
        bucket[plugin.name] = plugin
        logger.debug("Registered %s: %s v%s", kind.value, plugin.name, plugin.version)

    def unregister(self, kind: PluginKind, name: str) -> bool:
        return self._plugins[kind].pop(name, None) is not None

    def load(self, descriptors: Iterable[PluginDescriptor], strict: bool = True) -> int:
        """Instantiate and register plugins from descriptors.

        Args:
            descriptors: Ordered descriptor list (see config/plugins.py).
            strict: Raise on the first plugin that fails to load. When
                False, the failure is logged and the plugin skipped.

        Returns:
            Number of plugins registered.
        """
        loaded = 0
        skipped = 0
        for descriptor in descriptors:
            if not descriptor.enabled:
                logger.info("Skipping disabled plugin: %s", descriptor.name)
                skipped += 1
                continue
            try:
                plugin = _import_plugin(descriptor)
            except RegistryError as exc:
                if strict:
                    raise
                logger.warning("Failed to load plugin %s: %s", descriptor.name, exc)
                skipped += 1
                continue
            self.register(plugin)
            loaded += 1

        logger.info("Plugin manager loaded %d plugins (%d skipped)", loaded, skipped)
        return loaded

    def get(self, kind: PluginKind, name: str) -> BasePlugin | None:
        return self._plugins[kind].get(name)

    @property
    def transformers(self) -> list[Transformer]:
        return list(self._plugins[PluginKind.TRANSFORMER].values())  # type: ignore[arg-type]

    @property
    def filters(self) -> list[Filter]:
        return list(self._plugins[PluginKind.FILTER].values())  # type: ignore[arg-type]

    @property
    def emitters(self) -> list[Emitter]:
        return list(self._plugins[PluginKind.EMITTER].values())  # type: ignore[arg-type]

    def names(self, kind: PluginKind) -> list[str]:
        """Registered names of ``kind`` in run order."""
        return list(self._plugins[kind])

    def config_fingerprint(self) -> str:
        """Stable hash of the transformer chain (names, versions, options)."""
        return compute_config_hash(
            (t.name, t.version, t.options) for t in self.transformers
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def transform(self, ctx: BuildContext, content: ProcessedContent) -> ProcessedContent:
        """Run every transformer in order, each on the previous output.

        Raises:
            PluginExecutionError: On the first transformer failure; the
                document is not processed further.
        """
        for transformer in self.transformers:
            with plugin_context(transformer.name):
                try:
                    result = transformer.transform(ctx, content)
                    if not isinstance(result, ProcessedContent):
                        raise TypeError(
                            f"transform() returned {type(result).__name__}, "
                            "expected ProcessedContent"
                        )
                except Exception as exc:
                    _record(ctx, transformer.name, "transformer", ok=False)
                    raise PluginExecutionError(
                        transformer.name, "transform", exc, content.file_path
                    ) from exc
            _record(ctx, transformer.name, "transformer", ok=True)
            content = result
        return content

    def filter(
        self, ctx: BuildContext, contents: Sequence[ProcessedContent]
    ) -> FilterOutcome:
        """Keep documents every filter accepts.

        Every filter sees every document. A filter that raises counts as a
        rejection for that document and is recorded as a failure.
        """
        outcome = FilterOutcome()
        for content in contents:
            publish = True
            with file_context(content.file_path):
                for flt in self.filters:
                    with plugin_context(flt.name):
                        try:
                            keep = bool(flt.should_publish(ctx, content))
                        except Exception as exc:
                            _record(ctx, flt.name, "filter", ok=False)
                            error = PluginExecutionError(
                                flt.name, "filter", exc, content.file_path
                            )
                            outcome.failures.append(failure_from_exception(error, "filter"))
                            publish = False
                            continue
                    _record(ctx, flt.name, "filter", ok=True)
                    publish = publish and keep
            if publish:
                outcome.published.append(content)
            else:
                outcome.rejected.append(content.file_path)

        logger.info(
            "Filtered %d documents: %d published, %d rejected",
            len(contents), len(outcome.published), len(outcome.rejected),
        )
        return outcome

    async def emit(
        self,
        ctx: BuildContext,
        contents: Sequence[ProcessedContent],
        resources: ResourceLoader | None = None,
    ) -> EmitOutcome:
        """Run every emitter over the same published content set.

        An emitter failure is recorded for that plugin and the remaining
        emitters still run. A ResourceLoadError gets one retry after the
        emitter's resources are reloaded.

        Raises:
            BuildAbortError: If an emitter reports an unrecoverable condition.
        """
        loader = resources or ResourceLoader(ctx.settings.resources_dir)
        outcome = EmitOutcome()
        produced: set[FilePath] = set()
        items = tuple(contents)

        for emitter in self.emitters:
            ctx.cancel_token.raise_if_cancelled()

            async def attempt(emitter: Emitter = emitter) -> list[FilePath]:
                needed = loader.load_many(emitter.required_resources)
                return await emitter.emit(ctx, items, needed)

            def reload_resources(_exc: BaseException, emitter: Emitter = emitter) -> None:
                for name in emitter.required_resources:
                    loader.reload(name)

            with plugin_context(emitter.name):
                try:
                    artifacts = await with_recovery(
                        attempt,
                        unit=f"emitter '{emitter.name}'",
                        on_retry=reload_resources,
                        max_retries=ctx.settings.max_retries,
                    )
                except BuildAbortError:
                    raise
                except Exception as exc:
                    _record(ctx, emitter.name, "emitter", ok=False)
                    error = PluginExecutionError(emitter.name, "emit", exc)
                    outcome.failures.append(failure_from_exception(error, "emit"))
                    logger.error("Emitter %s failed: %s", emitter.name, exc)
                    continue

            _record(ctx, emitter.name, "emitter", ok=True)
            paths = sorted(FilePath(str(p)) for p in artifacts)
            outcome.per_plugin[emitter.name] = paths
            produced.update(paths)
            logger.info("Emitter %s wrote %d artifacts", emitter.name, len(paths))

        outcome.artifacts = sorted(produced)
        return outcome

    async def execute(
        self,
        ctx: BuildContext,
        contents: Sequence[ProcessedContent],
        resources: ResourceLoader | None = None,
    ) -> ExecutionOutcome:
        """Run transform, filter and emit over ``contents`` in one call.

        Transform failures drop the document and are reported in
        ``failures``; the rest continue through filter and emit.
        """
        result = ExecutionOutcome()
        for content in contents:
            with file_context(content.file_path):
                try:
                    result.transformed.append(self.transform(ctx, content))
                except PluginExecutionError as exc:
                    result.failures.append(failure_from_exception(exc, "transform"))
        result.transformed.sort(key=lambda c: c.file_path)
        result.filtered = self.filter(ctx, result.transformed)
        result.emitted = await self.emit(ctx, result.filtered.published, resources)
        result.failures.extend(result.filtered.failures)
        result.failures.extend(result.emitted.failures)
        return result


def _record(ctx: BuildContext, name: str, kind: Any, ok: bool) -> None:
    if ctx.stats is not None:
        ctx.stats.record_plugin(name, kind, ok)


def _import_plugin(descriptor: PluginDescriptor) -> BasePlugin:
    """Import and instantiate a plugin from its descriptor.

    Args:
        descriptor: e.g. class_path
            'quillpress.pipeline.transformers.frontmatter.FrontMatterTransformer'

    Returns:
        Instantiated plugin, configured with ``descriptor.options``.
    """
    parts = descriptor.class_path.rsplit(".", 1)
    if len(parts) != 2:
        raise RegistryError(f"Invalid class path: {descriptor.class_path}")
    module_path, class_name = parts

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise RegistryError(f"Cannot import module {module_path}: {exc}") from exc

    cls = getattr(module, class_name, None)
    if cls is None:
        raise RegistryError(f"Class {class_name} not found in {module_path}")

    expected = _KIND_CLASS[descriptor.kind]
    if not isinstance(cls, type) or not issubclass(cls, expected):
        raise RegistryError(
            f"{descriptor.class_path} is not a {expected.__name__} subclass"
        )

    try:
        plugin = cls(**descriptor.options)
    except TypeError as exc:
        raise RegistryError(f"Invalid options for {descriptor.name}: {exc}") from exc

    if plugin.name != descriptor.name:
        raise RegistryError(
            f"Descriptor name {descriptor.name!r} does not match plugin name {plugin.name!r}"
        )
    return plugin
