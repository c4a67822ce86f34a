from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from auth import CurrentUser, vendor_only
from database import get_by_id, get_collection, insert_with_id, list_many, now_utc, parse_object_id, serialize
from insights import demand_forecasts, spoilage_risk
from logger import get_logger
from schemas import ProductCategory, ProductIn, ProductStatus, ProductUpdate

log = get_logger(__name__)

router = APIRouter(prefix="/api/vendors", tags=["Vendors"])


def _seller_summary(seller_id: str):
    seller = get_by_id("user", seller_id)
    if not seller:
        return None
    return {"id": seller["id"], "name": seller.get("name"), "phoneNumber": seller.get("phoneNumber")}


def _farm_summary(farm_id: Optional[str]):
    farm = get_by_id("farm", farm_id) if farm_id else None
    if not farm:
        return None
    return {"id": farm["id"], "name": farm.get("name"), "location": farm.get("location")}


def _owned_product(product_id: str, user: CurrentUser, action: str) -> dict:
    parse_object_id(product_id, "product")
    product = get_by_id("product", product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product.get("seller") != user.id:
        raise HTTPException(status_code=403, detail=f"Not authorized to {action} this product")
    return product


# ------------------------- Products -------------------------

@router.get("/products")
def list_products(
    category: Optional[ProductCategory] = None,
    status: Optional[ProductStatus] = None,
    mine: bool = False,
    country: Optional[str] = None,
    region: Optional[str] = None,
    user: CurrentUser = Depends(vendor_only),
):
    query = {}
    if category:
        query["category"] = category
    if status:
        query["status"] = status
    if mine:
        query["seller"] = user.id
    if country:
        query["location.country"] = country
    if region:
        query["location.region"] = region

    products = list_many("product", query, sort=[("createdAt", -1), ("_id", -1)])
    sellers = {}
    result = []
    for p in products:
        sid = p.get("seller")
        if sid not in sellers:
            sellers[sid] = _seller_summary(sid)
        result.append({**serialize(p), "seller": sellers[sid]})
    return result


@router.get("/products/{product_id}")
def get_product(product_id: str, user: CurrentUser = Depends(vendor_only)):
    parse_object_id(product_id, "product")
    product = get_by_id("product", product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return {
        **serialize(product),
        "seller": _seller_summary(product.get("seller")),
        "farm": _farm_summary(product.get("farm")),
    }


@router.post("/products", status_code=201)
def create_product(body: ProductIn, user: CurrentUser = Depends(vendor_only)):
    fields = body.model_dump(exclude_none=True)
    farm_id = fields.pop("farmId", None)
    if farm_id:
        parse_object_id(farm_id, "farm")
        if not get_by_id("farm", farm_id):
            raise HTTPException(status_code=404, detail="Farm not found")

    product = insert_with_id("product", {
        **fields,
        "seller": user.id,
        "farm": farm_id,
        "status": "available",
    })
    log.info("Vendor %s listed product %s", user.id, product["id"])
    return serialize(product)


@router.put("/products/{product_id}")
def update_product(product_id: str, body: ProductUpdate, user: CurrentUser = Depends(vendor_only)):
    product = _owned_product(product_id, user, "update")
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    changes["updatedAt"] = now_utc()
    products = get_collection("product")
    products.update_one({"id": product["id"]}, {"$set": changes})
    return serialize(products.find_one({"id": product["id"]}))


@router.delete("/products/{product_id}")
def delete_product(product_id: str, user: CurrentUser = Depends(vendor_only)):
    product = _owned_product(product_id, user, "delete")
    get_collection("product").delete_one({"id": product["id"]})
    log.info("Vendor %s removed product %s", user.id, product["id"])
    return {"message": "Product removed"}


# ------------------------- Reports -------------------------

@router.get("/spoilage-risks")
def get_spoilage_risks(user: CurrentUser = Depends(vendor_only)):
    products = list_many("product", {"seller": user.id, "status": {"$ne": "sold"}})
    return [spoilage_risk(serialize(p)) for p in products]


@router.get("/demand-forecasts")
def get_demand_forecasts(user: CurrentUser = Depends(vendor_only)):
    return demand_forecasts()
