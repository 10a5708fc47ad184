"""
Seat layout schemas
"""

from typing import List
from pydantic import BaseModel, Field, model_validator

class GridLayout(BaseModel):
    """Explicit grid dimensions, either imported or derived from seat numbers"""
    rows: int = Field(ge=0)
    cols: int = Field(ge=0)
    row_labels: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_row_labels(self):
        if len(self.row_labels) != self.rows:
            raise ValueError(f"row_labels has {len(self.row_labels)} entries, expected {self.rows}")
        if len(set(self.row_labels)) != len(self.row_labels):
            raise ValueError("row_labels must be unique")
        return self
