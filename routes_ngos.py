import csv
import io
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from auth import CurrentUser, ngo_only
from database import get_by_id, get_collection, insert_with_id, list_many, now_utc, parse_object_id, serialize
from logger import get_logger
from schemas import AnalyticsIn, AnalyticsType, AnalyticsUpdate

log = get_logger(__name__)

router = APIRouter(prefix="/api/ngos", tags=["NGOs"])


def can_view(analytics: dict, user: CurrentUser) -> bool:
    rights = analytics.get("accessRights") or {}
    if rights.get("public"):
        return True
    restricted = rights.get("restrictedTo") or []
    return user.id in restricted or user.role in restricted


def can_manage(analytics: dict, user: CurrentUser) -> bool:
    rights = analytics.get("accessRights") or {}
    return user.id in (rights.get("restrictedTo") or [])


def _load(analytics_id: str) -> dict:
    parse_object_id(analytics_id, "analytics")
    analytics = get_by_id("analytics", analytics_id)
    if not analytics:
        raise HTTPException(status_code=404, detail="Analytics not found")
    return analytics


def _with_member(rights: dict, user_id: str) -> dict:
    restricted = list(rights.get("restrictedTo") or [])
    if user_id not in restricted:
        restricted.append(user_id)
    return {**rights, "restrictedTo": restricted}


# ------------------------- Analytics -------------------------

@router.get("/analytics")
def list_analytics(
    type: Optional[AnalyticsType] = None,
    country: Optional[str] = None,
    region: Optional[str] = None,
    cropType: Optional[str] = None,
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    user: CurrentUser = Depends(ngo_only),
):
    query = {}
    if type:
        query["type"] = type
    if country:
        query["scope.country"] = country
    if region:
        query["scope.region"] = region
    if cropType:
        query["scope.cropTypes"] = {"$in": [cropType]}
    if startDate:
        query["timeframe.start"] = {"$gte": startDate}
    if endDate:
        query["timeframe.end"] = {"$lte": endDate}
    query["$or"] = [
        {"accessRights.public": True},
        {"accessRights.restrictedTo": {"$in": [user.id, user.role]}},
    ]
    return [serialize(a) for a in list_many("analytics", query, sort=[("createdAt", -1), ("_id", -1)])]


@router.get("/analytics/{analytics_id}")
def get_analytics(analytics_id: str, user: CurrentUser = Depends(ngo_only)):
    analytics = _load(analytics_id)
    if not can_view(analytics, user):
        raise HTTPException(status_code=403, detail="Not authorized to access these analytics")
    return serialize(analytics)


@router.post("/analytics", status_code=201)
def create_analytics(body: AnalyticsIn, user: CurrentUser = Depends(ngo_only)):
    fields = body.model_dump(exclude_none=True)
    # the author always keeps edit rights, public or not
    fields["accessRights"] = _with_member(fields["accessRights"], user.id)
    analytics = insert_with_id("analytics", {**fields, "createdBy": user.id})
    log.info("NGO user %s created analytics %s", user.id, analytics["id"])
    return serialize(analytics)


@router.put("/analytics/{analytics_id}")
def update_analytics(analytics_id: str, body: AnalyticsUpdate, user: CurrentUser = Depends(ngo_only)):
    analytics = _load(analytics_id)
    if not can_manage(analytics, user):
        raise HTTPException(status_code=403, detail="Not authorized to update these analytics")

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "accessRights" in changes:
        changes["accessRights"] = _with_member(changes["accessRights"], user.id)
    changes["updatedAt"] = now_utc()

    coll = get_collection("analytics")
    coll.update_one({"id": analytics["id"]}, {"$set": changes})
    return serialize(coll.find_one({"id": analytics["id"]}))


@router.delete("/analytics/{analytics_id}")
def delete_analytics(analytics_id: str, user: CurrentUser = Depends(ngo_only)):
    analytics = _load(analytics_id)
    if not can_manage(analytics, user):
        raise HTTPException(status_code=403, detail="Not authorized to delete these analytics")
    get_collection("analytics").delete_one({"id": analytics["id"]})
    log.info("NGO user %s deleted analytics %s", user.id, analytics["id"])
    return {"message": "Analytics removed"}


# ------------------------- Export -------------------------

def metrics_csv(analytics: dict) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["name", "value", "unit", "trend"])
    for m in analytics.get("metrics", []):
        writer.writerow([m.get("name"), m.get("value"), m.get("unit"), "" if m.get("trend") is None else m["trend"]])
    return buf.getvalue()


@router.get("/export/{analytics_id}")
def export_analytics(analytics_id: str, format: Literal["json", "csv"] = "json", user: CurrentUser = Depends(ngo_only)):
    analytics = _load(analytics_id)
    if not can_view(analytics, user):
        raise HTTPException(status_code=403, detail="Not authorized to access these analytics")

    if format == "csv":
        return Response(
            content=metrics_csv(analytics),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="analytics-{analytics["id"]}.csv"'},
        )

    doc = serialize(analytics)
    return {
        "title": doc.get("title"),
        "description": doc.get("description"),
        "type": doc.get("type"),
        "timeframe": doc.get("timeframe"),
        "scope": doc.get("scope"),
        "metrics": doc.get("metrics", []),
        "insights": doc.get("insights", []),
        "recommendations": doc.get("recommendations", []),
        "sources": doc.get("sources", []),
        "exportedAt": now_utc(),
    }
