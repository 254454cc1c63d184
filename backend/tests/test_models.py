"""
Tests for the list-mutation logic on the ORM models and the request/response schemas.
No I/O, no mocking needed: rows are transient objects.
"""

import uuid

import pytest
from pydantic import ValidationError

from shoplist.models.product import ProductCategory, ProductCreate, ProductUpdate
from shoplist.models.shopping_list import ListItemCreate, ListItemUpdate, ShoppingListRead

from .factories import make_item, make_list, make_product


# ---------------------------------------------------------------------------
# ShoppingList.add_item
# ---------------------------------------------------------------------------


class TestAddItem:
    def test_adds_new_product_line(self):
        milk = make_product("Milk")
        sl = make_list()
        item = sl.add_item(product_id=milk.id, quantity=2)
        assert sl.items == [item]
        assert item.product_id == milk.id
        assert item.quantity == 2
        assert item.is_purchased is False

    def test_quantity_defaults_to_one(self):
        sl = make_list()
        item = sl.add_item(custom_name="Candles")
        assert item.quantity == 1

    def test_same_product_bumps_quantity(self):
        milk = make_product("Milk")
        sl = make_list(items=[make_item(milk, quantity=2)])
        sl.add_item(product_id=milk.id, quantity=3)
        assert len(sl.items) == 1
        assert sl.items[0].quantity == 5

    def test_same_product_without_quantity_adds_one(self):
        milk = make_product("Milk")
        sl = make_list(items=[make_item(milk, quantity=2)])
        sl.add_item(product_id=milk.id)
        assert sl.items[0].quantity == 3

    def test_custom_name_match_is_case_insensitive(self):
        sl = make_list(items=[make_item(custom_name="Birthday candles")])
        sl.add_item(custom_name="  birthday CANDLES ")
        assert len(sl.items) == 1
        assert sl.items[0].quantity == 2

    def test_different_products_get_separate_lines(self):
        sl = make_list()
        sl.add_item(product_id=make_product("Milk").id)
        sl.add_item(product_id=make_product("Eggs").id)
        assert len(sl.items) == 2

    def test_custom_name_is_trimmed(self):
        sl = make_list()
        item = sl.add_item(custom_name="  Foil  ")
        assert item.custom_name == "Foil"


# ---------------------------------------------------------------------------
# Other ShoppingList mutations
# ---------------------------------------------------------------------------


class TestListMutations:
    def test_remove_item(self):
        item = make_item(custom_name="Foil")
        sl = make_list(items=[item])
        assert sl.remove_item(item.id) is True
        assert sl.items == []

    def test_remove_missing_item_returns_false(self):
        sl = make_list(items=[make_item(custom_name="Foil")])
        assert sl.remove_item(uuid.uuid4()) is False
        assert len(sl.items) == 1

    def test_clear_completed_keeps_unpurchased(self):
        keep = make_item(custom_name="Foil")
        sl = make_list(
            items=[
                make_item(custom_name="Bread", is_purchased=True),
                keep,
                make_item(custom_name="Eggs", is_purchased=True),
            ]
        )
        assert sl.clear_completed() == 2
        assert sl.items == [keep]

    def test_clear_completed_on_empty_list(self):
        sl = make_list()
        assert sl.clear_completed() == 0

    def test_archive_and_unarchive(self):
        sl = make_list()
        sl.archive()
        assert sl.status == "archived"
        sl.unarchive()
        assert sl.status == "active"

    def test_purchased_count(self):
        sl = make_list(
            items=[
                make_item(custom_name="Bread", is_purchased=True),
                make_item(custom_name="Foil"),
            ]
        )
        assert sl.purchased_count == 1


class TestDisplayName:
    def test_custom_name_wins(self):
        item = make_item(make_product("Milk"), custom_name="Oat milk")
        assert item.display_name == "Oat milk"

    def test_falls_back_to_product_name(self):
        assert make_item(make_product("Milk")).display_name == "Milk"

    def test_orphaned_item_has_empty_name(self):
        # product deleted from the catalog
        assert make_item(None).display_name == ""


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class TestProductSchemas:
    def test_create_defaults(self):
        p = ProductCreate(name="Rice")
        assert p.category == ProductCategory.OTHER
        assert p.unit.value == "unit"
        assert p.consumption_duration == 7
        assert p.default_quantity == 1

    def test_create_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            ProductCreate(name="   ")

    def test_create_rejects_unknown_category(self):
        with pytest.raises(ValidationError):
            ProductCreate(name="Rice", category="Grains")

    def test_update_only_reports_sent_fields(self):
        update = ProductUpdate.model_validate({"brand": "Acme", "best_price": 2.5})
        assert update.changes() == {"brand": "Acme", "best_price": 2.5}

    def test_update_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            ProductUpdate(name="   ")

    def test_update_strips_name(self):
        assert ProductUpdate(name="  Oat milk ").changes() == {"name": "Oat milk"}

    def test_update_can_clear_optional_field(self):
        update = ProductUpdate.model_validate({"brand": None})
        assert update.changes() == {"brand": None}

    def test_update_ignores_null_for_required_field(self):
        update = ProductUpdate.model_validate({"name": None, "unit": None, "notes": "x"})
        assert update.changes() == {"notes": "x"}

    def test_update_serializes_enums_as_values(self):
        update = ProductUpdate.model_validate({"category": "Snacks"})
        assert update.changes() == {"category": "Snacks"}


class TestListSchemas:
    def test_item_requires_product_or_name(self):
        with pytest.raises(ValidationError):
            ListItemCreate(quantity=2)

    def test_blank_custom_name_counts_as_missing(self):
        with pytest.raises(ValidationError):
            ListItemCreate(custom_name="   ")

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            ListItemCreate(custom_name="Foil", quantity=0)
        with pytest.raises(ValidationError):
            ListItemUpdate(quantity=-1)

    def test_read_populates_products_and_counts(self):
        milk = make_product("Milk")
        sl = make_list(
            items=[
                make_item(milk, quantity=2),
                make_item(custom_name="Foil", is_purchased=True),
            ]
        )
        data = ShoppingListRead.from_row(sl).model_dump(mode="json")
        assert data["total_items"] == 2
        assert data["purchased_items"] == 1
        assert data["items"][0]["product"]["name"] == "Milk"
        assert data["items"][0]["display_name"] == "Milk"
        assert data["items"][1]["product"] is None
        assert data["items"][1]["display_name"] == "Foil"
