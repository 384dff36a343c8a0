from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """One engine specific setting, read as <TYPE>_<ENGINE>_<env_key>.

    A default of None marks the setting as required.
    """

    env_key: str
    val_type: Literal["string", "number", "bool"] = "string"
    default: str | int | float | bool | None = None
