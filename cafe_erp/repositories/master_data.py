"""Repositories for tenant master data (locations, products, suppliers)."""


from cafe_erp.domain.location import Location
from cafe_erp.domain.product import Product
from cafe_erp.domain.supplier import Supplier
from cafe_erp.repositories.base import BaseRepository


class LocationRepository(BaseRepository[Location]):
    model = Location


class ProductRepository(BaseRepository[Product]):
    model = Product


class SupplierRepository(BaseRepository[Supplier]):
    model = Supplier
