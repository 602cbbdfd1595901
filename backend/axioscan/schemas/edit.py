# backend/axioscan/schemas/edit.py
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from .document import Document
from ..imaging import CropAspect, FilterKind, FlipAxis
from ..imaging.watermark import MIN_SPACING

Color = Tuple[int, int, int]


class EditBase(BaseModel):
    # None applies the edit to every loaded page
    page_number: Optional[int] = Field(default=None, ge=1)


class CropEdit(EditBase):
    op: Literal["crop"]
    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class AspectCropEdit(EditBase):
    op: Literal["crop_to_aspect"]
    aspect: CropAspect


class RotateEdit(EditBase):
    op: Literal["rotate"]
    degrees: float


class FlipEdit(EditBase):
    op: Literal["flip"]
    axis: FlipAxis


class FilterEdit(EditBase):
    op: Literal["filter"]
    kind: FilterKind
    intensity: float = Field(default=1.0, ge=0.0, le=1.0)


class AdjustEdit(EditBase):
    op: Literal["adjust"]
    brightness: float = Field(default=0.0, ge=-1.0, le=1.0)
    contrast: float = Field(default=1.0, ge=0.0, le=2.0)
    saturation: float = Field(default=1.0, ge=0.0, le=2.0)


class WatermarkEdit(EditBase):
    op: Literal["watermark"]
    text: str = Field(min_length=1)
    opacity: float = Field(default=0.5, ge=0.0, le=1.0)
    relative_size: float = Field(default=0.5, gt=0.0, le=1.0)
    angle_degrees: float = 45.0
    spacing: float = Field(default=0.35, ge=MIN_SPACING)
    color: Color = (128, 128, 128)


class StrokeInput(BaseModel):
    points: List[Tuple[float, float]]
    color: Color = (0, 0, 0)
    width: int = Field(default=4, gt=0)
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)


class RedactionInput(BaseModel):
    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    color: Color = (0, 0, 0)


class AnnotateEdit(EditBase):
    op: Literal["annotate"]
    strokes: List[StrokeInput] = []
    redactions: List[RedactionInput] = []


class RevertEdit(EditBase):
    op: Literal["revert"]


PageEdit = Annotated[
    Union[CropEdit, AspectCropEdit, RotateEdit, FlipEdit, FilterEdit, AdjustEdit, WatermarkEdit, AnnotateEdit, RevertEdit],
    Field(discriminator="op")
]


class EditRequest(BaseModel):
    edits: List[PageEdit] = Field(min_length=1)


class EditResult(BaseModel):
    document: Document
    saved_page_ids: List[int]
    file_size: int
