"""Category aggregate with its management commands.

Category names are unique, case-insensitively. The check runs in the handler
before the write, and the unique column backs it up at commit.
"""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.events import CategoryCreated
from storefront.shared.errors import CategoryNotFound, DuplicateCategory


@storefront.aggregate
class Category:
    name = String(required=True, max_length=100, unique=True)
    description = Text()
    icon = String(max_length=20)
    is_active = Boolean(default=True)
    created_at = DateTime()

    @classmethod
    def create(cls, name, description=None, icon=None):
        category = cls(
            name=name.strip(),
            description=description,
            icon=icon,
            is_active=True,
            created_at=datetime.now(UTC),
        )
        category.raise_(CategoryCreated(category_id=str(category.id), name=category.name))
        return category


@storefront.repository(part_of=Category)
class CategoryRepository:
    def named(self, name: str) -> Category | None:
        return self.query.filter(name__iexact=name.strip()).all().first

    def listing(self) -> list[Category]:
        return self.query.limit(None).order_by("name").all().items


@storefront.command(part_of="Category")
class CreateCategory:
    name = String(required=True, max_length=100)
    description = Text()
    icon = String(max_length=20)


@storefront.command(part_of="Category")
class UpdateCategory:
    category_id = Identifier(required=True)
    name = String(max_length=100)
    description = Text()
    icon = String(max_length=20)


@storefront.command(part_of="Category")
class DeactivateCategory:
    category_id = Identifier(required=True)


def load_category(category_id) -> Category:
    try:
        return current_domain.repository_for(Category).get(category_id)
    except ObjectNotFoundError:
        raise CategoryNotFound(str(category_id)) from None


@storefront.command_handler(part_of=Category)
class CategoryManagementHandler:
    @handle(CreateCategory)
    def create_category(self, command):
        repo = current_domain.repository_for(Category)
        if repo.named(command.name) is not None:
            raise DuplicateCategory(command.name)

        category = Category.create(name=command.name, description=command.description, icon=command.icon)
        repo.add(category)
        return str(category.id)

    @handle(UpdateCategory)
    def update_category(self, command):
        repo = current_domain.repository_for(Category)
        category = load_category(command.category_id)

        if command.name and command.name.strip().lower() != category.name.lower():
            if repo.named(command.name) is not None:
                raise DuplicateCategory(command.name)
            category.name = command.name.strip()
        if command.description is not None:
            category.description = command.description
        if command.icon is not None:
            category.icon = command.icon

        repo.add(category)

    @handle(DeactivateCategory)
    def deactivate_category(self, command):
        category = load_category(command.category_id)
        category.is_active = False
        current_domain.repository_for(Category).add(category)
