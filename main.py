# main.py

import logging
from typing import Optional
from datetime import datetime
from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from constants import VERSION
from models import InvalidParameterError, DataTypeError
from blood_properties import compute_blood_properties
from geometry import generate_geometry
from core_physics import AVFPhysicsEngine

# --- 1. CONFIGURATION & LOGGING ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("avf-sim-api")

app = FastAPI(
    title="AVF Hemodynamics API",
    version=VERSION,
    description="Reduced-order hemodynamics of a radiocephalic arteriovenous fistula: "
                "wall shear, oscillatory shear, residence time and maturation outlook.\n\n"
                "**WARNING**: Research and planning aid only. Not a diagnostic device.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def read_root():
    return {"status": "active", "message": "AVF Hemodynamics API is running"}


@app.get("/health")
def health_check():
    """Liveness probe"""
    return {"status": "active", "version": VERSION, "module": "avf-hemodynamics-engine"}


# --- 2. STRICT INPUT SCHEMAS ---
class BloodPropertiesRequest(BaseModel):
    flow_rate: float = Field(..., ge=0.0, le=5000.0, description="Segment flow in mL/min")
    diameter: float = Field(..., gt=0.0, le=12.0, description="Lumen diameter in mm")
    hematocrit: float = Field(..., gt=0.0, lt=1.0, description="Ratio, e.g. 0.40")


class GeometryRequest(BaseModel):
    artery_diameter: float = Field(..., ge=0.5, le=12.0, description="mm")
    vein_diameter: float = Field(..., ge=0.5, le=12.0, description="mm")
    anastomosis_angle: float = Field(..., ge=0.0, le=90.0, description="degrees")


class SimulationRequest(BaseModel):
    artery_diameter: float = Field(..., ge=0.5, le=12.0, description="Radial artery diameter (mm)")
    vein_diameter: float = Field(..., ge=0.5, le=12.0, description="Cephalic vein diameter (mm)")
    anastomosis_angle: float = Field(..., ge=0.0, le=90.0, description="Vein take-off angle (deg)")
    flow_rate: float = Field(..., gt=0.0, le=5000.0, description="Arterial inflow (mL/min)")
    hematocrit: float = Field(..., gt=0.0, lt=1.0, description="Ratio, e.g. 0.40")
    heart_rate: float = Field(75.0, ge=30.0, le=220.0, description="bpm")
    systolic_ratio: float = Field(0.35, gt=0.0, lt=1.0)
    blood_pressure: float = Field(90.0, gt=0.0, le=300.0, description="Mean pressure (mmHg), reporting only")

    include_wall: bool = Field(False, description="Return per-wall-point TAWSS/OSI/RRT")
    base_flow_rate: Optional[float] = Field(None, gt=0.0, le=5000.0,
                                            description="Timeline starting flow; defaults to flow_rate")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "artery_diameter": 4.0, "vein_diameter": 4.0, "anastomosis_angle": 45.0,
            "flow_rate": 600.0, "hematocrit": 0.40, "heart_rate": 75.0,
            "systolic_ratio": 0.35, "include_wall": False
        }
    })


# --- 3. ENDPOINTS ---

@app.post("/blood-properties")
def get_blood_properties(request: BloodPropertiesRequest):
    """Carreau viscosity, wall shear rate and Reynolds number for one segment."""
    try:
        blood = compute_blood_properties(request.flow_rate, request.diameter, request.hematocrit)
        return jsonable_encoder(blood)
    except (InvalidParameterError, DataTypeError, ValueError) as e:
        logger.warning(f"Parameter Validation Error: {str(e)}")
        raise HTTPException(status_code=422, detail=f"Parameter Validation Error: {str(e)}")
    except Exception as e:
        logger.error(f"Blood Model Failure: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Blood Model Error")


@app.post("/geometry")
def get_geometry(request: GeometryRequest):
    """Wall contours, centerlines and region-tagged wall samples of the junction."""
    try:
        geometry = generate_geometry(
            request.artery_diameter, request.vein_diameter, request.anastomosis_angle
        )
        return jsonable_encoder(geometry)
    except (InvalidParameterError, DataTypeError, ValueError) as e:
        logger.warning(f"Parameter Validation Error: {str(e)}")
        raise HTTPException(status_code=422, detail=f"Parameter Validation Error: {str(e)}")
    except Exception as e:
        logger.error(f"Geometry Failure: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Geometry Error")


@app.post("/simulate")
def simulate(request: SimulationRequest):
    """
    Full run: hemodynamic metrics, flow split, maturation prediction,
    12-week timeline and metric traffic lights.
    """
    logger.info(
        f"Simulating Da={request.artery_diameter}mm Dv={request.vein_diameter}mm "
        f"angle={request.anastomosis_angle}deg Q={request.flow_rate}mL/min"
    )

    data = request.model_dump(exclude={"include_wall", "base_flow_rate"})
    report = AVFPhysicsEngine.create_simulation(data, base_flow_rate=request.base_flow_rate)

    if not report.success:
        detail = "; ".join(report.errors)
        if any(err.startswith("System Error") for err in report.errors):
            raise HTTPException(status_code=500, detail="Internal Hemodynamics Engine Error")
        raise HTTPException(status_code=422, detail=f"Parameter Validation Error: {detail}")

    hemo = report.hemodynamics
    response = {
        "params": report.params,
        "metrics": hemo.metrics,
        "flow_split": hemo.flow_split,
        "waveform": hemo.waveform,
        "prediction": report.prediction,
        "timeline": report.timeline,
        "metric_status": report.metric_status,
        "audit_log": report.audit_log,
        "generated_at": datetime.now(),
    }
    if request.include_wall:
        response["wall_wss"] = hemo.wall_wss

    return jsonable_encoder(response)
