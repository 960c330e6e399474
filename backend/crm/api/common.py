# backend/crm/api/common.py

from typing import Any, Iterable, List, Optional

from pydantic import BaseModel


class OwnerOut(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class ProjectRefOut(BaseModel):
    id: int
    name: str
    client: str

    class Config:
        from_attributes = True


def listing(items: List[Any]) -> dict:
    return {"success": True, "count": len(items), "data": items}


def single(item: Any) -> dict:
    return {"success": True, "data": item}


def apply_updates(record, payload: BaseModel, nullable: Iterable[str] = ()) -> None:
    """
    Copy the fields the client actually sent onto `record`.

    An explicit null only clears fields listed in `nullable`; for the rest it
    means "leave as is".
    """
    nullable = set(nullable)
    for k, v in payload.model_dump(exclude_unset=True).items():
        if v is None and k not in nullable:
            continue
        setattr(record, k, v)


def line_items(items: Optional[Iterable[BaseModel]]) -> list:
    # item total defaults to quantity * price
    out = []
    for item in items or []:
        row = item.model_dump()
        if row.get("total") is None:
            row["total"] = round(row["quantity"] * row["price"], 2)
        out.append(row)
    return out
