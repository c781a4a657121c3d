"""
Batch processing of queued clips.

Each item runs the ClipChain independently with its own settings. Failures are
caught per item and surface as status=ERROR with a short message; sibling items
are never affected. run_all processes items one at a time in submission order.

Settings changes bump the item's generation. A run remembers the generation it
started with and, if a newer one exists when it finishes, its result is thrown
away and the item goes back to PENDING: the last settings always win.
"""
from dataclasses import dataclass
import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional

from clipengine.core.io import AudioIO
from clipengine.core.types import BatchItem, BatchStatus, ClipSettings, SampleBuffer
from clipengine.dsp.chain import ClipChain
from clipengine.qc import analyze as qc_analyze

logger = logging.getLogger("clipengine")

StatusListener = Callable[[BatchItem], None]


@dataclass(frozen=True)
class _Outcome:
    output: Optional[SampleBuffer] = None
    data: Optional[bytes] = None
    warnings: tuple = ()
    error: Optional[str] = None


class BatchOrchestrator:
    def __init__(
        self,
        default_settings: Optional[ClipSettings] = None,
        on_status: Optional[StatusListener] = None,
    ):
        self.default_settings = default_settings or ClipSettings()
        self._on_status = on_status
        self._items: Dict[str, BatchItem] = {}
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Queue management
    # -------------------------------------------------------------------------

    @property
    def items(self) -> List[BatchItem]:
        with self._lock:
            return list(self._items.values())

    def get(self, item_id: str) -> BatchItem:
        with self._lock:
            return self._items[item_id]

    def add(self, name: str, source: SampleBuffer, settings: Optional[ClipSettings] = None) -> BatchItem:
        item = BatchItem(name=name, source=source, settings=settings or self.default_settings)
        with self._lock:
            self._items[item.id] = item
        logger.info("Queued %s (%s)", item.name, item.id)
        return item

    def remove(self, item_id: str) -> None:
        with self._lock:
            self._items.pop(item_id, None)

    def update_settings(self, item_id: str, settings: ClipSettings) -> BatchItem:
        """New settings for one item. Any finished or in-flight result becomes stale."""
        with self._lock:
            item = self._items[item_id]
            item.settings = settings
            item.generation += 1
            if item.status in (BatchStatus.DONE, BatchStatus.ERROR):
                self._set_status(item, BatchStatus.PENDING)
            return item

    def apply_to_all(self, settings: ClipSettings) -> None:
        """Give every item a copy of settings and mark it for reprocessing."""
        for item in self.items:
            self.update_settings(item.id, settings)

    def request_reprocess(self, item_id: str) -> BatchItem:
        with self._lock:
            item = self._items[item_id]
            if item.status in (BatchStatus.DONE, BatchStatus.ERROR):
                self._set_status(item, BatchStatus.PENDING)
            return item

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    def _set_status(self, item: BatchItem, status: BatchStatus, **fields) -> None:
        previous = item.status
        item.transition(status)
        for name, value in fields.items():
            setattr(item, name, value)
        logger.info("Item %s: %s -> %s", item.name, previous.value, status.value)
        if self._on_status is not None:
            self._on_status(item)

    @staticmethod
    def _run_chain(source: SampleBuffer, settings: ClipSettings) -> _Outcome:
        try:
            result = ClipChain.process(source, settings)
            data = AudioIO.encode(result.output)
            report = qc_analyze(result.output)
        except Exception as e:
            logger.warning("Processing failed: %s", e, exc_info=True)
            return _Outcome(error=f"Processing failed: {e}")

        warnings = list(report["warnings"]) + list(report["failures"])
        if result.no_signal:
            warnings.insert(0, f"No signal above {settings.trim.threshold_db:.1f} dB; trim skipped")
        return _Outcome(output=result.output, data=data, warnings=tuple(warnings))

    def process(self, item: BatchItem) -> BatchItem:
        """
        Run the chain for one item. DONE and ERROR items are reset to PENDING
        first; an item that is already PROCESSING raises InvalidTransitionError.
        """
        with self._lock:
            if item.status in (BatchStatus.DONE, BatchStatus.ERROR):
                self._set_status(item, BatchStatus.PENDING)
            token = item.generation
            settings = item.settings
            source = item.source
            self._set_status(item, BatchStatus.PROCESSING)

        outcome = self._run_chain(source, settings)

        with self._lock:
            if item.generation != token:
                logger.info("Discarding stale result for %s (settings changed during run)", item.name)
                self._set_status(item, BatchStatus.PENDING)
                return item
            if outcome.error is not None:
                self._set_status(item, BatchStatus.ERROR, error=outcome.error)
            else:
                self._set_status(
                    item,
                    BatchStatus.DONE,
                    result=outcome.output,
                    result_bytes=outcome.data,
                    warnings=list(outcome.warnings),
                )
            return item

    def run_all(self, items: Optional[Iterable[BatchItem]] = None) -> List[BatchItem]:
        """
        Process every PENDING or ERROR item sequentially, in submission order.
        Returns the items that were processed.
        """
        targets = [
            item for item in (self.items if items is None else list(items))
            if item.status in (BatchStatus.PENDING, BatchStatus.ERROR)
        ]
        for item in targets:
            self.process(item)
        return targets

    def done_items(self) -> List[BatchItem]:
        return [item for item in self.items if item.status == BatchStatus.DONE]
