from sqlmodel import Field, SQLModel

SHIPPING_ZONES = ("inside_dhaka", "outside_dhaka")


class City(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    name: str
    value: str = Field(unique=True, index=True)  # lower-kebab-case, e.g. "cox-s-bazar"
    shipping_zone: str = "outside_dhaka"  # "inside_dhaka" | "outside_dhaka"
    sort_order: int = Field(default=0, index=True)
