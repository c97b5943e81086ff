"""Location, product and supplier services.

Plain tenant-scoped CRUD. Codes (location code, product SKU, supplier code)
are unique per tenant; a duplicate is a 409.
"""


from sqlalchemy.ext.asyncio import AsyncSession

from cafe_erp.core.exceptions import ConflictError, NotFoundError
from cafe_erp.core.pagination import PaginationParams
from cafe_erp.domain.location import Location
from cafe_erp.domain.product import Product
from cafe_erp.domain.supplier import Supplier
from cafe_erp.repositories.master_data import (
    LocationRepository,
    ProductRepository,
    SupplierRepository,
)
from cafe_erp.schemas.master_data import (
    LocationCreate,
    LocationUpdate,
    ProductCreate,
    ProductUpdate,
    SupplierCreate,
    SupplierUpdate,
)


class LocationService:
    def __init__(self, session: AsyncSession, tenant_id: str):
        self._repo = LocationRepository(session, tenant_id)

    async def list_locations(
        self,
        pagination: PaginationParams,
        type: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ):
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"type": type, "is_active": is_active},
            search=search,
            search_fields=("code", "name", "city"),
        )

    async def get_location(self, location_id: str) -> Location:
        location = await self._repo.get_by_id(location_id)
        if not location:
            raise NotFoundError("Location", location_id)
        return location

    async def create_location(self, data: LocationCreate) -> Location:
        if await self._repo.find_one(code=data.code):
            raise ConflictError(f"Location code '{data.code}' already exists")
        return await self._repo.create(**data.model_dump(exclude_none=True))

    async def update_location(self, location_id: str, data: LocationUpdate) -> Location:
        _ = await self.get_location(location_id)
        updated = await self._repo.update(
            location_id, **data.model_dump(exclude_none=True, exclude_unset=True)
        )
        return updated  # type: ignore[return-value]

    async def delete_location(self, location_id: str) -> None:
        deleted = await self._repo.soft_delete(location_id)
        if not deleted:
            raise NotFoundError("Location", location_id)


class ProductService:
    def __init__(self, session: AsyncSession, tenant_id: str):
        self._repo = ProductRepository(session, tenant_id)

    async def list_products(
        self,
        pagination: PaginationParams,
        kind: str | None = None,
        is_perishable: bool | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ):
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"kind": kind, "is_perishable": is_perishable, "is_active": is_active},
            search=search,
            search_fields=("sku", "name"),
        )

    async def get_product(self, product_id: str) -> Product:
        product = await self._repo.get_by_id(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    async def create_product(self, data: ProductCreate) -> Product:
        if await self._repo.find_one(sku=data.sku):
            raise ConflictError(f"Product SKU '{data.sku}' already exists")
        return await self._repo.create(**data.model_dump(exclude_none=True))

    async def update_product(self, product_id: str, data: ProductUpdate) -> Product:
        _ = await self.get_product(product_id)
        updated = await self._repo.update(
            product_id, **data.model_dump(exclude_none=True, exclude_unset=True)
        )
        return updated  # type: ignore[return-value]

    async def delete_product(self, product_id: str) -> None:
        deleted = await self._repo.soft_delete(product_id)
        if not deleted:
            raise NotFoundError("Product", product_id)


class SupplierService:
    def __init__(self, session: AsyncSession, tenant_id: str):
        self._repo = SupplierRepository(session, tenant_id)

    async def list_suppliers(
        self,
        pagination: PaginationParams,
        is_active: bool | None = None,
        search: str | None = None,
    ):
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"is_active": is_active},
            search=search,
            search_fields=("code", "name", "contact_person", "email"),
        )

    async def get_supplier(self, supplier_id: str) -> Supplier:
        supplier = await self._repo.get_by_id(supplier_id)
        if not supplier:
            raise NotFoundError("Supplier", supplier_id)
        return supplier

    async def create_supplier(self, data: SupplierCreate) -> Supplier:
        if await self._repo.find_one(code=data.code):
            raise ConflictError(f"Supplier code '{data.code}' already exists")
        return await self._repo.create(**data.model_dump(exclude_none=True))

    async def update_supplier(self, supplier_id: str, data: SupplierUpdate) -> Supplier:
        _ = await self.get_supplier(supplier_id)
        updated = await self._repo.update(
            supplier_id, **data.model_dump(exclude_none=True, exclude_unset=True)
        )
        return updated  # type: ignore[return-value]

    async def delete_supplier(self, supplier_id: str) -> None:
        deleted = await self._repo.soft_delete(supplier_id)
        if not deleted:
            raise NotFoundError("Supplier", supplier_id)
