"""Category schema and visibility rules."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from monev.models.category import Category
from monev.schemas.category import CategoryCreate, CategoryUpdate


def test_create_normalizes_name_and_color():
    data = CategoryCreate(name="  Kopi   Pagi ", color="#ABCDEF")

    assert data.name == "Kopi Pagi"
    assert data.color == "#abcdef"
    assert data.type == "expense"


@pytest.mark.parametrize("payload", [{"name": "   "}, {"name": "Kopi", "color": "red"}, {"name": "Kopi", "type": "transfer"}])
def test_create_rejects_bad_input(payload):
    with pytest.raises(PydanticValidationError):
        CategoryCreate(**payload)


def test_update_leaves_unset_fields_out():
    data = CategoryUpdate(color="#00FF00")

    assert data.model_dump(exclude_unset=True) == {"color": "#00ff00"}


def test_visibility():
    system = Category(name="Gaji", type="income", is_system=True, user_id=None)
    mine = Category(name="Kopi", type="expense", is_system=False, user_id=1)

    assert system.visible_to(2)
    assert mine.visible_to(1)
    assert not mine.visible_to(2)


async def test_list_categories_requires_auth(client):
    response = await client.get("/api/v1/categories")
    assert response.status_code == 401
