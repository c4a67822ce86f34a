from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Response

from auth import CurrentUser, farmer_only
from database import get_collection, insert_with_id, list_many, now_utc, parse_object_id, serialize
from insights import mock_yield_prediction
from logger import get_logger
from schemas import CropIn, CropUpdate, FarmIn, PredictionRequest

log = get_logger(__name__)

router = APIRouter(prefix="/api/farmers", tags=["Farmers"])


def _own_farm(user: CurrentUser, detail: str = "Farm not found") -> dict:
    farm = get_collection("farm").find_one({"owner": user.id})
    if not farm:
        raise HTTPException(status_code=404, detail=detail)
    return farm


def _find_crop(farm: dict, crop_id: str):
    for i, crop in enumerate(farm.get("crops", [])):
        if crop.get("id") == crop_id:
            return i, crop
    raise HTTPException(status_code=404, detail="Crop not found")


# ------------------------- Farm -------------------------

@router.get("/farm")
def get_farm(user: CurrentUser = Depends(farmer_only)):
    return serialize(_own_farm(user))


@router.put("/farm")
def upsert_farm(body: FarmIn, response: Response, user: CurrentUser = Depends(farmer_only)):
    farms = get_collection("farm")
    fields = body.model_dump(exclude_unset=True, exclude_none=True)
    farm = farms.find_one({"owner": user.id})

    if farm:
        fields["updatedAt"] = now_utc()
        farms.update_one({"id": farm["id"]}, {"$set": fields})
        return serialize(farms.find_one({"id": farm["id"]}))

    missing = [k for k in ("name", "location", "size") if k not in fields]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing fields to create a farm: {', '.join(missing)}")
    farm = insert_with_id("farm", {
        "owner": user.id,
        "crops": [],
        "waterSource": [],
        "equipment": [],
        **fields,
    })
    log.info("Created farm %s for %s", farm["id"], user.id)
    response.status_code = 201
    return serialize(farm)


# ------------------------- Crops -------------------------

@router.post("/crops", status_code=201)
def add_crop(body: CropIn, user: CurrentUser = Depends(farmer_only)):
    farm = _own_farm(user, "Farm not found. Please create a farm profile first.")
    crop = {"id": str(ObjectId()), **body.model_dump(exclude_none=True)}
    get_collection("farm").update_one(
        {"id": farm["id"]},
        {"$push": {"crops": crop}, "$set": {"updatedAt": now_utc()}},
    )
    return serialize(crop)


@router.put("/crops/{crop_id}")
def update_crop(crop_id: str, body: CropUpdate, user: CurrentUser = Depends(farmer_only)):
    parse_object_id(crop_id, "crop")
    farm = _own_farm(user)
    index, crop = _find_crop(farm, crop_id)

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if changes:
        get_collection("farm").update_one(
            {"id": farm["id"]},
            {"$set": {**{f"crops.{index}.{k}": v for k, v in changes.items()}, "updatedAt": now_utc()}},
        )
    return serialize({**crop, **changes})


@router.delete("/crops/{crop_id}")
def delete_crop(crop_id: str, user: CurrentUser = Depends(farmer_only)):
    parse_object_id(crop_id, "crop")
    farm = _own_farm(user)
    _find_crop(farm, crop_id)
    get_collection("farm").update_one(
        {"id": farm["id"]},
        {"$pull": {"crops": {"id": crop_id}}, "$set": {"updatedAt": now_utc()}},
    )
    return {"message": "Crop removed successfully"}


# ------------------------- Yield predictions -------------------------

@router.get("/predictions")
def list_predictions(user: CurrentUser = Depends(farmer_only)):
    farm = _own_farm(user)
    preds = list_many("yieldprediction", {"farm": farm["id"]}, sort=[("createdAt", -1), ("_id", -1)])
    return [serialize(p) for p in preds]


@router.post("/predictions", status_code=201)
def request_prediction(body: PredictionRequest, user: CurrentUser = Depends(farmer_only)):
    farm = _own_farm(user)
    if body.cropId:
        _, crop = _find_crop(farm, body.cropId)
    else:
        crop = {"name": body.cropName, "variety": body.cropVariety, "area": body.cropArea}

    # TODO: call a real yield model service once one exists; this is random placeholder data
    pred = insert_with_id("yieldprediction", mock_yield_prediction(farm["id"], crop))
    return serialize(pred)
