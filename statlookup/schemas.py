from typing import List, Optional, Any, Dict
from pydantic import BaseModel, Field, ConfigDict


class VectorRef(BaseModel):
    vectorId: str
    text: str = ""


class ProductLookupEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    productId: int
    description: str = ""
    vectors: List[VectorRef] = Field(default_factory=list)


class WdsRecord(BaseModel):
    """One element of a WDS batch response. `object` is passed through untouched."""
    model_config = ConfigDict(extra="allow")

    status: str
    object: Optional[Dict[str, Any]] = None


# --- UI request bodies
class LookupRequest(BaseModel):
    productId: Any = None


class VectorViewRequest(BaseModel):
    vectorId: Any = None
    latestN: Any = None
    # "vectors" -> getDataFromVectors + getSeriesInfo; "statscan" -> generic fetch
    source: str = "vectors"
