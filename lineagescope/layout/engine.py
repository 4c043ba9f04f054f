"""Layout engine: strategy dispatch, caching, fallback and cancellation."""

import asyncio
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from lineagescope.config import EngineSettings
from lineagescope.errors import LayoutError
from lineagescope.graph.model import Graph
from lineagescope.layout.cache import CacheKey, LayoutCache, make_key
from lineagescope.layout.cluster import cluster_layout
from lineagescope.layout.force import CancelCheck, ForceSolver, SpringForceSolver, force_layout
from lineagescope.layout.grid import grid_layout
from lineagescope.layout.hierarchical import hierarchical_layout
from lineagescope.layout.options import (
    ForceOptions,
    GridOptions,
    LayoutOptions,
    parse_options,
)
from lineagescope.layout.radial import circular_layout, radial_layout
from lineagescope.layout.timeline import timeline_layout
from lineagescope.logging import log_operation, logger
from lineagescope.models.graph import LayoutResult, Position

Strategy = Callable[[Graph, list[str], Any], dict[str, Position]]
OptionsInput = LayoutOptions | Mapping[str, Any] | None

FALLBACK_LAYOUT = "grid"


class LayoutEngine:
    """Computes and caches layouts for one graph.

    Example:
        engine = LayoutEngine(graph)
        result = engine.compute("radial", options={"ring_spacing": 120})
        result.positions["abraham"]
    """

    def __init__(
        self,
        graph: Graph,
        settings: EngineSettings | None = None,
        solver: ForceSolver | None = None,
    ) -> None:
        self.graph = graph
        self.settings = settings or EngineSettings()
        self.solver = solver or SpringForceSolver()
        self.cache = LayoutCache(self.settings.cache_size)
        self.strategies: dict[str, Strategy] = {
            "hierarchical": hierarchical_layout,
            "radial": radial_layout,
            "circular": circular_layout,
            "timeline": timeline_layout,
            "grid": grid_layout,
            "cluster": cluster_layout,
            "force": self._force,
        }
        self._request_seq = 0
        self._inflight: asyncio.Future | None = None
        self._inflight_cancel: threading.Event | None = None

    def set_graph(self, graph: Graph) -> None:
        """Swap in a newly loaded graph and drop every cached layout."""
        self.graph = graph
        self.cache.clear()

    def resolve_options(self, layout_type: str, options: OptionsInput = None) -> LayoutOptions:
        """Validate options and fill canvas size and node radius from settings."""
        opts = parse_options(layout_type, options)
        update: dict[str, Any] = {}
        if opts.width is None:
            update["width"] = self.settings.canvas_width
        if opts.height is None:
            update["height"] = self.settings.canvas_height
        if "node_radius" in type(opts).model_fields and "node_radius" not in opts.model_fields_set:
            update["node_radius"] = self.settings.node_radius
        return opts.model_copy(update=update) if update else opts

    def visible_ids(self, visible_ids: Iterable[str] | None = None) -> list[str]:
        if visible_ids is None:
            return list(self.graph.node_ids())
        return self.graph.ordered(visible_ids)

    def _force(
        self,
        graph: Graph,
        ids: list[str],
        options: ForceOptions,
        cancelled: CancelCheck | None = None,
        initial: Mapping[str, Position] | None = None,
        pinned: Mapping[str, Position] | None = None,
    ) -> dict[str, Position]:
        return force_layout(
            graph, ids, options, self.solver, initial=initial, pinned=pinned, cancelled=cancelled
        )

    def _run(
        self,
        layout_type: str,
        ids: list[str],
        options: LayoutOptions,
        key: CacheKey,
        cancelled: CancelCheck | None = None,
    ) -> LayoutResult | None:
        """Run one strategy, falling back to grid if it fails.

        Returns:
            The LayoutResult, or None if the run was cancelled.

        Raises:
            LayoutError: If the grid fallback fails too.
        """
        strategy = self.strategies[layout_type]
        warnings: list[str] = []
        used_type = layout_type
        fallback_from = None

        with log_operation("layout", {"type": layout_type, "nodes": len(ids)}) as timing:
            try:
                if layout_type == "force":
                    positions = strategy(self.graph, ids, options, cancelled=cancelled)
                else:
                    positions = strategy(self.graph, ids, options)
            except (LayoutError, RecursionError) as e:
                if layout_type == FALLBACK_LAYOUT:
                    raise LayoutError(f"Grid layout failed: {e}", layout_type) from e
                message = f"{layout_type} layout failed ({e}); fell back to {FALLBACK_LAYOUT}"
                logger.warning(message)
                warnings.append(message)
                used_type = FALLBACK_LAYOUT
                fallback_from = layout_type
                grid_options = GridOptions(
                    width=options.width, height=options.height, margin=options.margin
                )
                try:
                    positions = self.strategies[FALLBACK_LAYOUT](self.graph, ids, grid_options)
                except LayoutError as grid_error:
                    raise LayoutError(
                        f"{layout_type} layout and {FALLBACK_LAYOUT} fallback both failed: "
                        f"{grid_error}",
                        layout_type,
                    ) from grid_error

        if cancelled is not None and cancelled():
            return None

        missing = [n for n in ids if n not in positions]
        if missing:
            message = f"{used_type} layout left {len(missing)} node(s) unpositioned"
            logger.warning("%s: %s", message, ", ".join(missing[:5]))
            warnings.append(message)

        return LayoutResult(
            layout_type=used_type,
            options_signature=key[1],
            node_signature=key[2],
            positions=dict(positions),
            warnings=warnings,
            fallback_from=fallback_from,
            elapsed_ms=timing.elapsed_ms,
        )

    def compute(
        self,
        layout_type: str,
        visible_ids: Iterable[str] | None = None,
        options: OptionsInput = None,
    ) -> LayoutResult:
        """Compute (or reuse) a layout synchronously.

        Args:
            layout_type: One of the registered strategy names.
            visible_ids: Nodes to lay out (default: every node).
            options: Strategy options as a model or mapping.

        Returns:
            LayoutResult snapshot; equal inputs return equal positions
            without recomputing.

        Raises:
            LayoutError: For unknown layout types, invalid options, or when
                the grid fallback fails too.
        """
        opts = self.resolve_options(layout_type, options)
        ids = self.visible_ids(visible_ids)
        key = make_key(layout_type, opts, ids)

        cached = self.cache.get(key, self.graph.revision)
        if cached is not None:
            logger.debug("Layout cache hit: %s (%d nodes)", layout_type, len(ids))
            return cached

        result = self._run(layout_type, ids, opts, key)
        if result is None:
            raise LayoutError(f"{layout_type} layout was cancelled", layout_type)
        self.cache.put(key, result, self.graph.revision)
        return result.snapshot()

    async def apply(
        self,
        layout_type: str,
        visible_ids: Iterable[str] | None = None,
        options: OptionsInput = None,
    ) -> LayoutResult:
        """Compute a layout off the event loop; the newest request wins.

        Starting a new request cancels the one in flight: its awaiter gets
        ``asyncio.CancelledError``, the force solver is told to stop at its
        next chunk boundary, and the superseded result never reaches the
        cache.

        Raises:
            asyncio.CancelledError: If a newer request superseded this one.
            LayoutError: As for ``compute``.
        """
        self._request_seq += 1
        token = self._request_seq
        self._cancel_inflight()

        opts = self.resolve_options(layout_type, options)
        ids = self.visible_ids(visible_ids)
        key = make_key(layout_type, opts, ids)
        revision = self.graph.revision

        cached = self.cache.get(key, revision)
        if cached is not None:
            return cached

        stop = threading.Event()
        future = asyncio.ensure_future(
            asyncio.to_thread(self._run, layout_type, ids, opts, key, stop.is_set)
        )
        self._inflight = future
        self._inflight_cancel = stop

        try:
            result = await future
        except asyncio.CancelledError:
            stop.set()
            raise
        finally:
            if self._inflight is future:
                self._inflight = None
                self._inflight_cancel = None

        if result is None or token != self._request_seq or revision != self.graph.revision:
            logger.debug("Discarding superseded %s layout", layout_type)
            raise asyncio.CancelledError(f"{layout_type} layout superseded")

        self.cache.put(key, result, revision)
        return result.snapshot()

    def _cancel_inflight(self) -> None:
        if self._inflight_cancel is not None:
            self._inflight_cancel.set()
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None
        self._inflight_cancel = None

    def relayout_incremental(
        self,
        previous: LayoutResult,
        visible_ids: Iterable[str] | None = None,
        layout_type: str | None = None,
        options: OptionsInput = None,
    ) -> LayoutResult:
        """Update a layout after nodes appear or disappear, keeping old positions.

        Nodes present in ``previous`` keep their coordinates exactly. For the
        force layout the new nodes are relaxed with the old ones pinned; for
        other strategies each new node keeps the offset the full layout gives
        it from its nearest already-placed neighbor.

        Returns:
            A new LayoutResult (not cached, since it depends on history).
        """
        layout_type = layout_type or previous.fallback_from or previous.layout_type
        opts = self.resolve_options(layout_type, options)
        ids = self.visible_ids(visible_ids)
        kept = {n: previous.positions[n] for n in ids if n in previous.positions}
        new_ids = [n for n in ids if n not in kept]
        _, signature, node_signature = make_key(layout_type, opts, ids)

        positions: dict[str, Position] = dict(kept)
        warnings: list[str] = []
        if new_ids and layout_type == "force":
            positions = force_layout(
                self.graph, ids, opts, self.solver, initial=kept, pinned=kept
            )
        elif new_ids:
            full = self.compute(layout_type, ids, opts)
            warnings.extend(full.warnings)
            for node_id in new_ids:
                anchor = next(
                    (n for n, _ in self.graph.neighbors(node_id) if n in kept),
                    None,
                )
                target = full.positions.get(node_id)
                if target is None:
                    continue
                if anchor is None or anchor not in full.positions:
                    positions[node_id] = target
                else:
                    origin = full.positions[anchor]
                    positions[node_id] = Position(
                        x=kept[anchor].x + target.x - origin.x,
                        y=kept[anchor].y + target.y - origin.y,
                    )

        return LayoutResult(
            layout_type=layout_type,
            options_signature=signature,
            node_signature=node_signature,
            positions=positions,
            warnings=warnings,
        )
