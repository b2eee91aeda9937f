from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# largest value a signed 64-bit INTEGER column holds
MAX_ID = 2**63 - 1
MAX_QUANTITY = 10_000

Id = Annotated[int, Field(gt=0, le=MAX_ID)]
Quantity = Annotated[int, Field(ge=1, le=MAX_QUANTITY)]
Points = Annotated[float, Field(allow_inf_nan=False)]


class CamelModel(BaseModel):
    """camelCase on the wire; snake_case is accepted on input too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ORMModel(CamelModel):
    model_config = ConfigDict(from_attributes=True)


class MessageOut(CamelModel):
    message: str
