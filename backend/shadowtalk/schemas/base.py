from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for everything that crosses the wire.

    Fields are snake_case in Python and camelCase in JSON, so a REST write
    response and the realtime broadcast of the same entity serialize
    identically.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
