import pytest

from kiosk.errors import ConflictError, ProductNotFoundError, ValidationError
from kiosk.extensions import db
from kiosk.models import CartItem, Product
from kiosk.models.catalog import DEFAULT_PRODUCT_IMAGE
from kiosk.services import catalog_service, ledger_service
from kiosk.services.session_service import CurrentUser
from kiosk.validation import MAX_QUANTITY


class TestCreateAndUpdate:

    def test_create_product(self, db_session):
        product = catalog_service.create_product({
            "name": "Dates",
            "price_cents": 450,
            "quantity": 40,
            "country": "Iraq",
        })

        assert product.id is not None
        assert product.description == ""
        assert product.image == DEFAULT_PRODUCT_IMAGE

    def test_missing_fields(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            catalog_service.create_product({"name": "Dates"})
        assert "price_cents" in str(exc_info.value)

    @pytest.mark.parametrize("payload", [
        {"name": "X", "price_cents": 0, "quantity": 1, "country": "Iraq"},
        {"name": "X", "price_cents": 100, "quantity": -1, "country": "Iraq"},
        {"name": "X", "price_cents": 100, "quantity": 10**20, "country": "Iraq"},
        {"name": "X", "price_cents": 100, "quantity": 1, "country": "France"},
        {"name": "  ", "price_cents": 100, "quantity": 1, "country": "Iraq"},
        {"name": "X", "price_cents": 9.99, "quantity": 1, "country": "Iraq"},
        {"name": "X", "price_cents": 100, "quantity": 1, "country": "Iraq", "version_id": 7},
    ])
    def test_rejects_bad_payloads(self, db_session, payload):
        with pytest.raises(ValidationError):
            catalog_service.create_product(payload)
        assert db.session.query(Product).count() == 0

    def test_update_product(self, db_session, make_product):
        tea = make_product(price_cents=300)

        updated = catalog_service.update_product(tea.id, {"price_cents": 350, "description": "Loose leaf"})

        assert updated.price_cents == 350
        assert updated.description == "Loose leaf"

    def test_update_cannot_set_stock(self, db_session, make_product):
        tea = make_product(quantity=5)
        with pytest.raises(ValidationError):
            catalog_service.update_product(tea.id, {"quantity": 500})
        assert db.session.get(Product, tea.id).quantity == 5

    def test_blank_image_falls_back_to_default(self, db_session, make_product):
        tea = make_product()
        updated = catalog_service.update_product(tea.id, {"image": ""})
        assert updated.image == DEFAULT_PRODUCT_IMAGE

    def test_update_unknown_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            catalog_service.update_product(99999, {"name": "Ghost"})


class TestListing:

    def test_filter_by_country(self, db_session, make_product):
        make_product(name="Tea", country="Iraq")
        make_product(name="Soap", country="Syria")

        names = [p.name for p in catalog_service.list_products("Syria")]

        assert names == ["Soap"]
        assert len(catalog_service.list_products()) == 2

    def test_unknown_country_filter(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.list_products("Atlantis")


class TestRestockAndDelete:

    def test_restock_increments(self, db_session, make_product):
        tea = make_product(quantity=2)

        product = catalog_service.restock_product(tea.id, 8)

        assert product.quantity == 10

    @pytest.mark.parametrize("quantity", [0, -3, "x"])
    def test_restock_requires_positive_quantity(self, db_session, make_product, quantity):
        tea = make_product(quantity=2)
        with pytest.raises(ValidationError):
            catalog_service.restock_product(tea.id, quantity)

    def test_restock_above_ceiling_rejected(self, db_session, make_product):
        tea = make_product(quantity=2)
        with pytest.raises(ValidationError):
            catalog_service.restock_product(tea.id, MAX_QUANTITY + 1)

    def test_restock_cannot_push_stock_past_ceiling(self, db_session, make_product):
        tea = make_product(quantity=MAX_QUANTITY - 5)

        with pytest.raises(ValidationError):
            catalog_service.restock_product(tea.id, 6)

        assert catalog_service.restock_product(tea.id, 5).quantity == MAX_QUANTITY

    def test_delete_removes_cart_lines(self, db_session, customer, make_product, fill_cart):
        tea = make_product(quantity=5)
        fill_cart(customer, (tea, 1))

        catalog_service.delete_product(tea.id)

        assert db.session.get(Product, tea.id) is None
        assert db.session.query(CartItem).count() == 0

    def test_ordered_product_cannot_be_deleted(self, db_session, customer, make_product, fill_cart):
        tea = make_product(price_cents=100, quantity=5)
        fill_cart(customer, (tea, 1))
        ledger_service.place_order(CurrentUser.from_user(customer))

        with pytest.raises(ConflictError):
            catalog_service.delete_product(tea.id)

        assert db.session.get(Product, tea.id) is not None
