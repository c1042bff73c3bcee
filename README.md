# boilquery

`boilquery` builds SQL statements from small, composable query mods, runs
them on a DB-API connection, binds the result rows onto dataclass models and
eager-loads relationships between models. It has no third-party dependencies.

## Installation

```
pip install boilquery
```

To run the test suite:

```
pip install "boilquery[test]"
pytest
```

## Building queries

A `boilquery.query.Query` collects the parts of a statement. Its `Dialect`
sets the identifier quotes (`lq`, `rq`, both `"` by default), the placeholder
style (`?` by default, `$1, $2, …` with `use_index_placeholders=True`) and
whether limits are written as `TOP`/`OFFSET … FETCH` (`use_top_clause=True`).
`boilquery.builders.build_query` turns the query into SQL text and a list of
arguments.

```python
from boilquery.query import Query, Dialect
from boilquery.builders import build_query
from boilquery import mods as qm

q = Query()
q.set_dialect(Dialect(lq='"', rq='"', use_index_placeholders=True))
qm.apply(
    q,
    qm.from_("videos"),
    qm.where("deleted = ?", False),
    qm.or_in("user_id in ?", 1, 2, 3),
    qm.order_by("created_at DESC"),
    qm.limit(10),
)

sql, args = build_query(q)
# SELECT * FROM "videos" WHERE (deleted = $1) OR ("user_id" IN ($2,$3,$4))
#   ORDER BY created_at DESC LIMIT 10;
# args == [False, 1, 2, 3]
```

A query with `delete` set builds a `DELETE`, one with `update` columns builds
an `UPDATE … SET` (columns in sorted order), and anything else a `SELECT`.
The built text is cached on the query as its raw SQL, so a later
`q.set_args(...)` reuses it with new arguments. `boilquery.query.raw` makes a
query from SQL text directly.

The mods in `boilquery.mods` cover joins (`inner_join`, `left_outer_join`,
`right_outer_join`, `full_outer_join`), `select`, `distinct`, `with_` (CTEs),
`where`, `and_`, `or_`, `or2`, `expr` (explicit parentheses), `where_in`,
`and_in`, `or_in`, `where_not_in`, `and_not_in`, `or_not_in`, `group_by`,
`having`, `order_by`, `limit`, `offset`, `for_` (locking clause), `comment`,
`sql` (raw statement), `load` (eager loading, with `rels` to join relationship
names) and `with_deleted` (drops the last `deleted_at is null` where clause).
Several mods can be applied as one with `QueryMods`.

Question marks escaped as `\?` stay literal question marks. An empty `IN` list
becomes `(1=0)` and an empty `NOT IN` list becomes `(1=1)`, so the query stays
valid.

`boilquery.qmhelper` has ready-made where mods: `where(name, operator, value)`
with an `Operator` (`=`, `!=`, `<`, `<=`, `>`, `>=`), `where_null_eq`, which
writes `is null` / `is not null` for None or for values whose `is_zero()` is
true, `where_is_null` and `where_is_not_null`.

`boilquery.quoting` holds the underlying `ident_quote`, `ident_quote_slice`
and `placeholders` helpers.

## Executing and binding

`execute`, `query_rows` and `query_row` in `boilquery.builders` build the query
and run it with `conn.cursor().execute(sql, args)`. The first two return the
cursor, `query_row` returns the first row or None. The statement and its
arguments are logged at debug level. Choose the dialect's placeholder style to
match your driver.

Models are dataclasses whose fields all have defaults. A field binds to the
column named by its `"boil"` metadata entry, or to its name with title case
undone (`FunID` → `fun_id`). A `"-"` entry keeps the field unbound, and a
`",bind"` suffix makes a dataclass field be searched for fields of its own
under a `name.` prefix.

```python
import sqlite3
from dataclasses import dataclass, field

from boilquery import mods as qm
from boilquery.eager_load import bind_query
from boilquery.query import Query

@dataclass
class User:
    id: int = 0
    name: str = field(default="", metadata={"boil": "name"})

conn = sqlite3.connect(":memory:")
conn.execute("create table users (id integer, name text)")
conn.execute("insert into users values (1, 'ann'), (2, 'bob')")

q = Query()
qm.apply(q, qm.from_("users"), qm.order_by("id"))
users = bind_query(q, conn, [], User)      # a new User per row
first = bind_query(Query(from_=["users"]), conn, User())   # first row only
```

`bind_query` binds onto a model instance (taking the first row, raising
`LookupError` when there is none) or onto a list, appending a new instance of
the given model per row. `boilquery.mapping.bind` does the same for a cursor
you have already run. `make_struct_mapping`, `bind_mapping`,
`ptrs_from_mapping`, `values_from_mapping` and `FieldRef` expose the
column-to-field mapping itself.

## Eager loading

Relationships requested with `mods.load("videos.tags")` are loaded after
binding, one level at a time. A model taking part carries an `R` attribute
holding the loaded relationships (one attribute per relationship name) and an
`L` loader with a `load_<relationship>(conn, singular, obj, mods)` method for
each relationship. Every object of a level is handed to one call; what the
loaders put into `R` is collected and loaded at the next level. See
`boilquery.eager_load.eager_load` and `collect_loaded`.

## Defaults and values

`boilquery.defaults.non_zero_default_set` returns those of a list of column
names whose fields on a model hold non-zero values.

`boilquery.values` compares and copies key values across nullable wrappers:
`equal`, `assign`, `must_time`, `is_nil`, `is_valuer_nil` and `set_scanner`,
with the `Valuer` (`value()`) and `Scanner` (`scan(value)`) protocols.

## What it does not do

`boilquery` does not generate model classes from a database schema, manage
connections or transactions, or hold a global connection: you write the
models and loaders and pass a DB-API connection to every call that runs SQL.