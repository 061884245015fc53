"""
Batch Calculation Orchestrator - runs many calculations in one call.

Each item is validated and calculated on its own; a failing item is
recorded as a failed outcome and never aborts the batch. The batch
itself is refused only when it is empty or larger than the limit
(at most MAX_BATCH_ITEMS; configuration can only lower it).
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, asdict, is_dataclass
from typing import Any, Iterable, Mapping, Optional

from ..config.settings import get_settings, Settings
from .calculators import round_money
from .errors import BatchRejected, InvalidInput, PricingError
from .models import CalculationInput, CalculationResult, PricingModelKind
from .pricing_engine import PricingEngine


logger = logging.getLogger(__name__)

MAX_BATCH_ITEMS = 50

INPUT_KEYS = ('quantity', 'baseCost', 'base_cost', 'billingPeriod', 'billing_period', 'parameters')


@dataclass
class CalculationRequest:
    """One batch item: a rate card's model and data plus the calculation input."""
    pricing_model: Any
    data: Any
    input: Any  # CalculationInput or a request mapping
    label: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> 'CalculationRequest':
        """
        Build from a request mapping.

        Input fields may be nested under "input" or given flat next to
        "pricingModel" and "data".
        """
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, Mapping):
            raise InvalidInput("Calculation request must be an object")

        pricing_model = raw.get('pricingModel', raw.get('pricing_model'))
        if pricing_model is None:
            raise InvalidInput("pricingModel is required")

        calc_input = raw.get('input')
        if calc_input is None:
            calc_input = {k: raw[k] for k in INPUT_KEYS if k in raw}
        return cls(
            pricing_model=pricing_model,
            data=raw.get('data'),
            input=calc_input,
            label=raw.get('label'),
        )

    def to_dict(self) -> dict:
        """Convert to the camelCase shape echoed back to callers."""
        if isinstance(self.pricing_model, PricingModelKind):
            pricing_model = self.pricing_model.value
        else:
            pricing_model = self.pricing_model

        data = asdict(self.data) if is_dataclass(self.data) else self.data
        if isinstance(self.input, CalculationInput):
            calc_input = self.input.to_dict()
        elif isinstance(self.input, Mapping):
            calc_input = dict(self.input)
        else:
            calc_input = self.input

        result = {'pricingModel': pricing_model, 'data': data, 'input': calc_input}
        if self.label is not None:
            result['label'] = self.label
        return result


@dataclass
class BatchItemResult:
    """Outcome of one batch item, in input order."""
    index: int
    success: bool
    request: Any
    label: Optional[str] = None
    calculation: Optional[CalculationResult] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            'index': self.index,
            'success': self.success,
            'label': self.label,
            'input': self.request,
        }
        if self.success:
            data['calculation'] = self.calculation.to_dict()
        else:
            data['error'] = self.error
        return data


@dataclass
class BatchSummary:
    total: int
    successful: int
    failed: int
    total_amount: float


@dataclass
class BatchReport:
    """Complete result of a batch run."""
    summary: BatchSummary
    results: list[BatchItemResult] = field(default_factory=list)

    @property
    def successful(self) -> list[BatchItemResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[BatchItemResult]:
        return [r for r in self.results if not r.success]

    def to_dict(self) -> dict:
        return {
            'summary': asdict(self.summary),
            'results': [r.to_dict() for r in self.results],
        }


def _echo(request: Any) -> Any:
    """Request as it should be echoed back."""
    if isinstance(request, CalculationRequest):
        return request.to_dict()
    if isinstance(request, Mapping):
        return dict(request)
    return request


def _label_of(request: Any) -> Optional[str]:
    if isinstance(request, CalculationRequest):
        return request.label
    if isinstance(request, Mapping):
        return request.get('label')
    return None


class BatchOrchestrator:
    """
    Fans a bounded list of calculation requests across the engine.

    Items are independent. With max_workers > 1 they are computed on a
    thread pool; results are always reassembled in input order.
    """

    def __init__(
        self,
        engine: Optional[PricingEngine] = None,
        max_items: Optional[int] = None,
        max_workers: Optional[int] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.engine = engine or PricingEngine()
        limit = max_items if max_items is not None else settings.max_batch_size
        self.max_items = min(limit, MAX_BATCH_ITEMS)
        self.max_workers = max_workers if max_workers is not None else settings.batch_workers

    def run(self, requests: Optional[Iterable[Any]]) -> BatchReport:
        """
        Calculate every request and summarize.

        Raises:
            BatchRejected: batch is empty or exceeds max_items
        """
        requests = list(requests or [])
        if not requests:
            raise BatchRejected("Calculations array is required and cannot be empty")
        if len(requests) > self.max_items:
            raise BatchRejected(f"Maximum {self.max_items} calculations allowed per request")

        if self.max_workers > 1 and len(requests) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(self._run_item, range(len(requests)), requests))
        else:
            results = [self._run_item(i, request) for i, request in enumerate(requests)]

        successful = [r for r in results if r.success]
        summary = BatchSummary(
            total=len(results),
            successful=len(successful),
            failed=len(results) - len(successful),
            total_amount=round_money(sum(r.calculation.total_price for r in successful)),
        )
        logger.info(
            "Batch finished: %d items, %d successful, %d failed",
            summary.total, summary.successful, summary.failed,
        )
        return BatchReport(summary=summary, results=results)

    def _run_item(self, index: int, request: Any) -> BatchItemResult:
        """Calculate one item, converting any failure into an outcome."""
        outcome = BatchItemResult(
            index=index,
            success=False,
            request=_echo(request),
            label=_label_of(request),
        )
        try:
            item = CalculationRequest.from_dict(request)
            outcome.calculation = self.engine.calculate(item.pricing_model, item.data, item.input)
            outcome.success = True
        except PricingError as e:
            outcome.error = str(e)
        except Exception as e:
            logger.exception("Unexpected failure in batch item %d", index)
            outcome.error = f"Calculation failed: {e}"
        return outcome


def run_batch(requests: Optional[Iterable[Any]], engine: Optional[PricingEngine] = None) -> BatchReport:
    """Run a batch with the configured limits."""
    return BatchOrchestrator(engine=engine).run(requests)
