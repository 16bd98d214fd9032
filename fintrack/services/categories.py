"""
Category Registry

Global catalog of income and expense categories.

GUARANTEES:
- (name, kind) is unique, compared case-insensitively
- A category referenced by a live transaction or budget can be neither
  deleted nor moved to the other kind

Writes take the registry lock exclusively, so the uniqueness and in-use
checks cannot interleave with the write they guard. Plain reads never
lock. Components that resolve a category and then store a reference to
it do both inside reading(), which keeps writers out until the
reference is visible to the usage probes.

The registry cannot see transactions or budgets itself. Components that
reference categories register a usage probe instead.
"""

from contextlib import contextmanager
from typing import Callable, Iterator, Optional
from uuid import UUID

from fintrack.errors import NotFoundError, ValidationError
from fintrack.log import get_logger
from fintrack.models import Category, CategoryKind
from fintrack.services.locks import SharedLock
from fintrack.services.storage import GLOBAL_PARTITION, PartitionStore
from fintrack.validation import parse_kind, require_text


UsageProbe = Callable[[UUID], bool]


class CategoryRegistry:
    """Create, look up, rename and retire categories."""
    
    def __init__(self, store: PartitionStore[Category]):
        self._store = store
        self._lock = SharedLock()
        self._usage_probes: list[UsageProbe] = []
        self._logger = get_logger(__name__)
    
    def register_usage_probe(self, probe: UsageProbe) -> None:
        """
        Add a callable answering "is this category id referenced?".
        
        The ledger and the budget tracker register themselves here.
        """
        self._usage_probes.append(probe)
    
    def is_in_use(self, category_id: UUID) -> bool:
        return any(probe(category_id) for probe in self._usage_probes)
    
    @contextmanager
    def reading(self) -> Iterator[None]:
        """
        Keep categories from being updated or deleted for the duration.
        
        Hold this from resolving a category until the entity referencing
        it is stored.
        """
        with self._lock.reading():
            yield
    
    def _find_collision(
        self,
        name: str,
        kind: CategoryKind,
        exclude_id: Optional[UUID] = None,
    ) -> Optional[Category]:
        key = (name.casefold(), kind)
        for category in self._store.list_rows(GLOBAL_PARTITION):
            if category.id != exclude_id and category.unique_key == key:
                return category
        return None
    
    def create_category(
        self,
        name: str,
        kind: CategoryKind | str,
        icon: Optional[str] = None,
    ) -> Category:
        """
        Create a new category.
        
        Raises:
            ValidationError: Blank name, unknown kind, or duplicate (name, kind)
        """
        name = require_text(name, "Category name")
        kind = parse_kind(kind)
        
        with self._lock.writing():
            if self._find_collision(name, kind):
                raise ValidationError(
                    f"A category with name '{name}' and kind '{kind.value}' already exists"
                )
            category = Category(name=name, kind=kind, icon=(icon or "").strip())
            self._store.put(GLOBAL_PARTITION, category)
        
        self._logger.info(
            "category_created",
            category_id=str(category.id),
            name=category.name,
            kind=category.kind.value,
        )
        return category
    
    def get_category(self, category_id: UUID) -> Category:
        category = self._store.get(GLOBAL_PARTITION, category_id)
        if category is None:
            raise NotFoundError(f"Category with ID {category_id} not found")
        return category
    
    def get_category_by_name(
        self,
        name: str,
        kind: Optional[CategoryKind | str] = None,
    ) -> Category:
        """
        Find a category by name, ignoring case.
        
        When the same name exists as both income and expense, pass kind
        to choose; otherwise the earliest registered one is returned.
        """
        wanted = require_text(name, "Category name").casefold()
        wanted_kind = parse_kind(kind) if kind is not None else None
        
        for category in self._store.list_rows(GLOBAL_PARTITION):
            if category.name.casefold() != wanted:
                continue
            if wanted_kind is None or category.kind is wanted_kind:
                return category
        raise NotFoundError(f"Category with name '{name}' not found")
    
    def update_category(
        self,
        category_id: UUID,
        name: str,
        kind: CategoryKind | str,
        icon: Optional[str] = None,
    ) -> Category:
        """
        Rename a category, change its icon, or change its kind.
        
        Raises:
            NotFoundError: Unknown category
            ValidationError: Blank name, unknown kind, duplicate (name, kind),
                or a kind change while the category is referenced
        """
        name = require_text(name, "Category name")
        kind = parse_kind(kind)
        
        with self._lock.writing():
            category = self.get_category(category_id)
            
            if self._find_collision(name, kind, exclude_id=category_id):
                raise ValidationError(
                    f"Another category with name '{name}' and kind '{kind.value}' already exists"
                )
            if kind is not category.kind and self.is_in_use(category_id):
                raise ValidationError(
                    f"Cannot change kind of category '{category.name}' from "
                    f"'{category.kind.value}' to '{kind.value}' while it is in use"
                )
            
            updated = category.model_copy(
                update={"name": name, "kind": kind, "icon": (icon or "").strip()}
            )
            self._store.put(GLOBAL_PARTITION, updated)
        
        self._logger.info(
            "category_updated",
            category_id=str(category_id),
            name=updated.name,
            kind=updated.kind.value,
        )
        return updated
    
    def delete_category(self, category_id: UUID) -> None:
        """
        Delete a category that nothing references.
        
        Raises:
            NotFoundError: Unknown category
            ValidationError: Category is used by a transaction or budget
        """
        with self._lock.writing():
            category = self.get_category(category_id)
            if self.is_in_use(category_id):
                raise ValidationError(
                    f"Cannot delete category '{category.name}' ({category_id}) "
                    "because it is in use by transactions or budgets"
                )
            self._store.delete(GLOBAL_PARTITION, category_id)
        
        self._logger.info("category_deleted", category_id=str(category_id))
    
    def list_categories(self, kind: Optional[CategoryKind | str] = None) -> list[Category]:
        categories = self._store.list_rows(GLOBAL_PARTITION)
        if kind is not None:
            wanted = parse_kind(kind)
            categories = [c for c in categories if c.kind is wanted]
        return categories
