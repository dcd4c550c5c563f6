from dataclasses import fields
from typing import get_type_hints


def assert_config_dict_matches_dataclass(dataclass_type: type, typeddict_type: type) -> None:
    """Every init option of a kind config can be passed as a keyword, and nothing else."""
    dataclass_fields = {f.name for f in fields(dataclass_type) if f.init}
    typeddict_fields = set(get_type_hints(typeddict_type))

    assert dataclass_fields == typeddict_fields, (
        f"{typeddict_type.__name__} and {dataclass_type.__name__} have different fields: "
        f"only in dataclass {sorted(dataclass_fields - typeddict_fields)}, "
        f"only in TypedDict {sorted(typeddict_fields - dataclass_fields)}"
    )
