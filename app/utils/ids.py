from typing import Any, List, Optional, Union

from bson import ObjectId


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def id_variants(ref: str) -> List[Union[str, ObjectId]]:
    # the marketplace front end stored refs as ObjectIds, this service stores strings
    oid = to_object_id(ref)
    return [ref, oid] if oid is not None else [ref]
