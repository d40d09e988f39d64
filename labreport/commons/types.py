from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class LoggingCfg(BaseModel):
    root: Optional[str] = None
    level: str = "INFO"


class RangesCfg(BaseModel):
    pediatric_age_cutoff: Optional[float] = None


class IdentifiersCfg(BaseModel):
    sid_seed: str = "1001"
    patient_id_seed: str = "8200070094"


class CompositionCfg(BaseModel):
    page_size: Optional[int] = Field(default=None, ge=1)


class Settings(BaseModel):
    app: Dict[str, Any] = {}
    logging: LoggingCfg = LoggingCfg()
    paths: Dict[str, str] = {}
    ranges: RangesCfg = RangesCfg()
    identifiers: IdentifiersCfg = IdentifiersCfg()
    composition: CompositionCfg = CompositionCfg()
