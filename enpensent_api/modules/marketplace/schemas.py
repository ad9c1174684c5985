from pydantic import BaseModel, ConfigDict, Field


class PurchaseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    listing_id: str = Field(alias="listingId", min_length=1)
    action: str = "purchase"


class CompletePurchaseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    listing_id: str = Field(alias="listingId", min_length=1)


class CheckoutResponse(BaseModel):
    url: str


class PurchaseResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    visualization_id: str = Field(alias="visualizationId")
