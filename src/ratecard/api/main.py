"""
Pricing API - FastAPI adapter around the calculation engine.

The caller supplies the rate card's pricing model and pricing data in
the request body; engine failures map to HTTP 400.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ratecard import __version__
from ratecard.config.settings import get_settings
from ratecard.engine import (
    PricingEngine,
    BatchOrchestrator,
    CalculationInput,
    PricingError,
    supported_models,
)
from ratecard.reporting.batch_table import export_batch_csv


logger = logging.getLogger(__name__)

app = FastAPI(
    title="Rate Card Pricing API",
    description="Calculation and validation endpoints for rate-card pricing models",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

engine = PricingEngine()


class CalcRequest(BaseModel):
    """Request model for a single calculation."""
    pricing_model: str
    data: Dict[str, Any]
    quantity: float
    base_cost: Optional[float] = None
    billing_period: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None

    def to_input(self) -> CalculationInput:
        return CalculationInput(
            quantity=self.quantity,
            base_cost=self.base_cost,
            billing_period=self.billing_period,
            parameters=self.parameters or {},
        )


class BulkItem(CalcRequest):
    """One item of a bulk calculation."""
    label: Optional[str] = Field(default=None, max_length=100)


class BulkCalcRequest(BaseModel):
    calculations: List[BulkItem] = Field(default_factory=list)


class ValidateRequest(BaseModel):
    pricing_model: str
    data: Any


def _batch_items(req: BulkCalcRequest) -> list[dict]:
    """Bulk items as plain request mappings, in order."""
    items = []
    for calc in req.calculations:
        item = {
            'pricingModel': calc.pricing_model,
            'data': calc.data,
            'quantity': calc.quantity,
            'label': calc.label,
        }
        if calc.base_cost is not None:
            item['baseCost'] = calc.base_cost
        if calc.billing_period is not None:
            item['billingPeriod'] = calc.billing_period
        if calc.parameters is not None:
            item['parameters'] = calc.parameters
        items.append(item)
    return items


@app.get("/")
async def root():
    return {"status": "online", "message": "Rate Card Pricing API Active"}


@app.get("/models")
async def list_models():
    """List supported pricing models."""
    return [
        {
            "pricing_model": handler.kind.value,
            "name": handler.kind.display_name,
            "description": handler.description,
        }
        for handler in supported_models()
    ]


@app.post("/calculate")
async def calculate_pricing(req: CalcRequest):
    try:
        calc_input = req.to_input()
        result = engine.calculate(req.pricing_model, req.data, calc_input)
    except PricingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Calculate pricing error")
        raise HTTPException(status_code=500, detail="Internal server error")

    return {
        "success": True,
        "calculation": jsonable_encoder(result.to_dict()),
        "input": calc_input.to_dict(),
    }


@app.post("/bulk-calculate")
async def bulk_calculate_pricing(req: BulkCalcRequest):
    settings = get_settings()
    orchestrator = BatchOrchestrator(engine=engine, settings=settings)
    try:
        report = orchestrator.run(_batch_items(req))
    except PricingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    body = report.to_dict()
    return {
        "success": True,
        "summary": body["summary"],
        "results": jsonable_encoder(body["results"]),
    }


@app.post("/bulk-calculate/export")
async def export_bulk_calculation(req: BulkCalcRequest):
    """Run a bulk calculation and return the result table as CSV."""
    orchestrator = BatchOrchestrator(engine=engine, settings=get_settings())
    try:
        report = orchestrator.run(_batch_items(req))
    except PricingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return Response(
        content=export_batch_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="calculations.csv"'},
    )


@app.post("/validate")
async def validate_pricing_model(req: ValidateRequest):
    """Pre-flight check of pricing data before a rate card is saved."""
    result = engine.check(req.pricing_model, req.data)
    return {
        "success": True,
        "valid": result.valid,
        "pricing_model": req.pricing_model,
        "message": "Pricing data is valid" if result.valid else "Pricing data validation failed",
        "errors": result.errors,
        "warnings": result.warnings,
    }
