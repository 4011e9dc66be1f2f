"""Layer and geometry operation API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from loguru import logger
from pydantic import BaseModel, Field

from app.workspace import MapWorkspace, get_workspace
from mapcore.errors import LayerNotFoundError, OperationError
from mapcore.layers.exporters.geojson import export_geojson
from mapcore.layers.ingest import IngestError, ingest_files
from mapcore.layers.layer import Layer

router = APIRouter(prefix="/api", tags=["layers"])


# ==================
# Request/Response Models
# ==================

class LayerResponse(BaseModel):
    """Layer summary (geometry is served by /geojson)."""
    id: str
    name: str
    visible: bool
    color: str
    source_format: str
    feature_count: int
    geometry_type: Optional[str]
    created_at: str


class UploadErrorResponse(BaseModel):
    """A file that produced no layer."""
    filename: str
    message: str


class UploadResponse(BaseModel):
    """Result of a multi-file upload."""
    layers: list[LayerResponse]
    errors: list[UploadErrorResponse]


class UpdateLayerRequest(BaseModel):
    """Visibility/color edit."""
    visible: Optional[bool] = None
    color: Optional[str] = None


class BufferRequest(BaseModel):
    layer_id: str
    radius_m: float = 0.0
    name: str = "Buffered Layer"


class UnionRequest(BaseModel):
    layer1_id: str
    layer2_id: str
    name: str = "New Union Layer"


class DifferenceRequest(BaseModel):
    base_id: str
    subtract_id: str
    name: str = "New Difference Layer"


class IntersectRequest(BaseModel):
    layer1_id: str
    layer2_id: str
    name: str = "New layer"


class ClipRequest(BaseModel):
    target_ids: list[str] = Field(min_length=1)
    clip_layer_id: str
    name: str = "New Clipped Layer"


class OperationResponse(BaseModel):
    """Layers appended by an operation; empty when it was a no-op."""
    operation: str
    layers: list[LayerResponse]


class MapConfigResponse(BaseModel):
    """Initial view for map clients."""
    style_url: str
    access_token: str
    center: list[float]  # [lng, lat]
    zoom: float
    opacity: float


def _layer_response(layer: Layer) -> LayerResponse:
    return LayerResponse(
        id=layer.layer_id,
        name=layer.name,
        visible=layer.visible,
        color=layer.color,
        source_format=layer.source_format,
        feature_count=len(layer.features),
        geometry_type=layer.representative_geometry_type,
        created_at=layer.created_at,
    )


def _operation_response(operation: str, layers: list[Layer]) -> OperationResponse:
    return OperationResponse(operation=operation, layers=[_layer_response(l) for l in layers])


def _require_layer(ws: MapWorkspace, layer_id: str) -> Layer:
    layer = ws.store.find(layer_id)
    if layer is None:
        raise HTTPException(status_code=404, detail=f"Layer not found: {layer_id}")
    return layer


# ==================
# Layer Endpoints
# ==================

@router.get("/layers", response_model=list[LayerResponse])
async def list_layers(ws: MapWorkspace = Depends(get_workspace)):
    """List layers in draw order (last is on top)."""
    return [_layer_response(layer) for layer in ws.store.snapshot]


@router.get("/layers/{layer_id}", response_model=LayerResponse)
async def get_layer(layer_id: str, ws: MapWorkspace = Depends(get_workspace)):
    return _layer_response(_require_layer(ws, layer_id))


@router.get("/layers/{layer_id}/geojson")
async def get_layer_geojson(layer_id: str, ws: MapWorkspace = Depends(get_workspace)):
    """Layer geometry as a GeoJSON FeatureCollection."""
    return export_geojson(_require_layer(ws, layer_id))


@router.post("/layers/upload", response_model=UploadResponse)
async def upload_layers(
    files: list[UploadFile] = File(...),
    ws: MapWorkspace = Depends(get_workspace),
):
    """Upload GeoJSON files; each valid file becomes one layer.

    Files are handled independently: a bad file shows up in ``errors``
    and does not stop the others.
    """
    uploads: list[tuple[str, str]] = []
    errors: list[IngestError] = []
    for upload in files:
        filename = upload.filename or "upload.geojson"
        raw = await upload.read()
        if len(raw) > ws.settings.max_upload_bytes:
            errors.append(IngestError(filename, f"File exceeds {ws.settings.max_upload_bytes} bytes"))
            continue
        try:
            uploads.append((filename, raw.decode("utf-8-sig")))
        except UnicodeDecodeError:
            errors.append(IngestError(filename, "File is not UTF-8 text"))

    report = ingest_files(ws.store, uploads, palette=ws.settings.layer_palette)
    errors.extend(report.errors)
    if errors:
        logger.warning(f"Upload: {len(errors)} of {len(files)} file(s) rejected")

    return UploadResponse(
        layers=[_layer_response(layer) for layer in report.layers],
        errors=[UploadErrorResponse(filename=e.filename, message=e.message) for e in errors],
    )


@router.patch("/layers/{layer_id}", response_model=LayerResponse)
async def update_layer(
    layer_id: str,
    request: UpdateLayerRequest,
    ws: MapWorkspace = Depends(get_workspace),
):
    """Toggle visibility and/or change the color of a layer."""
    try:
        layer = _require_layer(ws, layer_id)
        if request.color is not None:
            layer = ws.store.set_color(layer_id, request.color)
        if request.visible is not None:
            layer = ws.store.set_visible(layer_id, request.visible)
    except LayerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _layer_response(layer)


# ==================
# Operation Endpoints
# ==================

def _run(operation: str, call) -> OperationResponse:
    try:
        layers = call()
    except OperationError as e:
        logger.info(f"{operation}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return _operation_response(operation, layers)


@router.post("/operations/buffer", response_model=OperationResponse)
async def buffer_layer(request: BufferRequest, ws: MapWorkspace = Depends(get_workspace)):
    """Buffer every feature of a layer by a radius in meters."""
    name = request.name.strip() or "Buffered Layer"
    return _run("buffer", lambda: ws.pipeline.buffer(request.layer_id, request.radius_m, name))


@router.post("/operations/union", response_model=OperationResponse)
async def union_layers(request: UnionRequest, ws: MapWorkspace = Depends(get_workspace)):
    """Union the first features of two polygon layers."""
    name = request.name.strip() or "New Union Layer"
    return _run("union", lambda: ws.pipeline.union(request.layer1_id, request.layer2_id, name))


@router.post("/operations/difference", response_model=OperationResponse)
async def difference_layers(request: DifferenceRequest, ws: MapWorkspace = Depends(get_workspace)):
    """Subtract one polygon layer's first feature from another's."""
    name = request.name.strip() or "New Difference Layer"
    return _run("difference", lambda: ws.pipeline.difference(request.base_id, request.subtract_id, name))


@router.post("/operations/intersect", response_model=OperationResponse)
async def intersect_layers(request: IntersectRequest, ws: MapWorkspace = Depends(get_workspace)):
    """Intersect all polygon feature pairs of two layers."""
    name = request.name.strip() or "New layer"
    return _run("intersect", lambda: ws.pipeline.intersect(request.layer1_id, request.layer2_id, name))


@router.post("/operations/clip", response_model=OperationResponse)
async def clip_layers(request: ClipRequest, ws: MapWorkspace = Depends(get_workspace)):
    """Clip the features of several layers to one boundary layer."""
    name = request.name.strip() or "New Clipped Layer"
    return _run("clip", lambda: ws.pipeline.clip(request.target_ids, request.clip_layer_id, name))


# ==================
# Map
# ==================

@router.get("/map/config", response_model=MapConfigResponse)
async def map_config(ws: MapWorkspace = Depends(get_workspace)):
    s = ws.settings
    return MapConfigResponse(
        style_url=s.map_style_url,
        access_token=s.map_access_token,
        center=[s.map_center_lng, s.map_center_lat],
        zoom=s.map_zoom,
        opacity=s.primitive_opacity,
    )
