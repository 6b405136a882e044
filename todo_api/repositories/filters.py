"""
Построение запроса списка задач из фильтров.

GET /api/todos?completed=false&q=отчёт&tags=urgent,work&tagsMode=and&limit=10

превращается в:

    SELECT todos.* FROM todos
    WHERE todos.completed = false
      AND (todos.title ILIKE '%отчёт%' OR todos.description ILIKE '%отчёт%')
      AND EXISTS (SELECT 1 FROM todo_tags JOIN tags ... WHERE tags.name = 'urgent')
      AND EXISTS (SELECT 1 FROM todo_tags JOIN tags ... WHERE tags.name = 'work')
    ORDER BY todos.created_at DESC, todos.id DESC
    LIMIT 10 OFFSET 0;
"""

import enum
from dataclasses import dataclass, field

from sqlalchemy import ColumnElement, Select, and_, or_

from ..core.tags import parse_tag_filter
from ..models import Tag, Todo


class TagsMode(str, enum.Enum):
    """Как сочетать несколько тегов в фильтре."""

    AND = "and"  # задача должна иметь ВСЕ теги
    OR = "or"  # задача должна иметь ХОТЯ БЫ ОДИН тег


@dataclass
class TodoFilter:
    """
    Параметры выборки задач.

    tags - уже канонические имена без повторов; пустой список = без фильтра.
    """

    completed: bool | None = None
    q: str | None = None
    tags: list[str] = field(default_factory=list)
    tags_mode: TagsMode = TagsMode.OR
    limit: int | None = None
    offset: int = 0

    @classmethod
    def from_query(
        cls,
        completed: bool | None = None,
        q: str | None = None,
        tags: str | None = None,
        tags_mode: TagsMode | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> "TodoFilter":
        """Собрать фильтр из сырых query-параметров (tags - строка через запятую)."""
        return cls(
            completed=completed,
            q=q,
            tags=parse_tag_filter(tags),
            tags_mode=tags_mode or TagsMode.OR,
            limit=limit,
            offset=offset or 0,
        )


def tag_condition(names: list[str], mode: TagsMode) -> ColumnElement[bool] | None:
    """
    Условие по тегам.

    OR:  EXISTS(связь с тегом из списка)
    AND: EXISTS(связь с тегом 1) AND EXISTS(связь с тегом 2) AND ...

    В режиме AND несуществующий тег даёт пустой результат: для него
    ни один EXISTS не выполнится.
    """
    if not names:
        return None

    if mode == TagsMode.AND:
        return and_(*(Todo.tags.any(Tag.name == name) for name in names))

    return Todo.tags.any(Tag.name.in_(names))


def build_conditions(filters: TodoFilter) -> list[ColumnElement[bool]]:
    """Все условия WHERE; комбинируются через AND."""
    conditions: list[ColumnElement[bool]] = []

    if filters.completed is not None:
        conditions.append(Todo.completed == filters.completed)

    if filters.q:
        # autoescape - чтобы % и _ в поиске искались буквально
        conditions.append(
            or_(
                Todo.title.icontains(filters.q, autoescape=True),
                Todo.description.icontains(filters.q, autoescape=True),
            )
        )

    tags = tag_condition(filters.tags, filters.tags_mode)
    if tags is not None:
        conditions.append(tags)

    return conditions


def apply_filter(query: Select, filters: TodoFilter) -> Select:
    """
    Применить фильтры, сортировку и пагинацию к SELECT по задачам.

    Сортировка всегда одна и та же: сначала новые, при равном created_at -
    по id, чтобы одинаковые запросы возвращали одинаковый порядок.
    """
    conditions = build_conditions(filters)
    if conditions:
        query = query.where(and_(*conditions))

    query = query.order_by(Todo.created_at.desc(), Todo.id.desc())

    if filters.offset:
        query = query.offset(filters.offset)
    if filters.limit is not None:
        query = query.limit(filters.limit)

    return query
