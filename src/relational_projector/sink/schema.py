"""
Idempotent DDL for the relational read model.

Every statement uses ``IF NOT EXISTS`` / ``OR REPLACE`` so ``ensure_schema``
can run on every start. The map views join the projected tables with the
route network tables (schema ``route_network``) and are only created on
request, since they need that schema and PostGIS to exist.
"""

from __future__ import annotations

from psycopg import sql

from relational_projector.sink.rows import COLUMNS, KEYS
from relational_projector.state.records import EntityKind

_COLUMN_DDL_TYPES = {
    "uuid": "uuid",
    "integer": "integer",
    "boolean": "boolean",
    "varchar": "character varying(255)",
}

# Indexed columns per table
_INDEXES: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.INTEREST_RELATION: ("route_network_element_id",),
    EntityKind.SPAN_EQUIPMENT: ("interest_id",),
    EntityKind.NODE_CONTAINER: ("route_node_id",),
    EntityKind.SERVICE_TERMINATION: ("route_node_id",),
    EntityKind.CONDUIT_SLACK: ("route_node_id",),
    EntityKind.WORK_TASK: (),
}


def create_schema_statement(schema: str) -> sql.Composed:
    return sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema))


def create_table_statement(schema: str, kind: EntityKind) -> sql.Composed:
    columns = [
        sql.SQL("{} {}").format(sql.Identifier(name), sql.SQL(_COLUMN_DDL_TYPES[pg_type]))
        for name, pg_type in COLUMNS[kind]
    ]
    primary_key = sql.SQL("PRIMARY KEY ({})").format(
        sql.SQL(", ").join(sql.Identifier(key) for key in KEYS[kind])
    )
    return sql.SQL("CREATE TABLE IF NOT EXISTS {}.{} ({})").format(
        sql.Identifier(schema),
        sql.Identifier(kind.table),
        sql.SQL(", ").join([*columns, primary_key]),
    )


def create_index_statements(schema: str, kind: EntityKind) -> list[sql.Composed]:
    return [
        sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {}.{} ({})").format(
            sql.Identifier(f"idx_{kind.table}_{column}"),
            sql.Identifier(schema),
            sql.Identifier(kind.table),
            sql.Identifier(column),
        )
        for column in _INDEXES[kind]
    ]


# ── Map views ────────────────────────────────────────────────────────────
# {schema} is substituted with the quoted sink schema.

_ROUTE_SEGMENT_LABEL_VIEW = """
CREATE OR REPLACE VIEW {schema}.route_segment_label AS
SELECT
    mrid,
    coord,
    (
        SELECT string_agg(
            CASE
                WHEN outer_diameter = 0 THEN cast(n_conduit AS text) || ' stk kabel'
                ELSE cast(n_conduit AS text) || ' stk Ø' || cast(outer_diameter AS text)
            END,
            ', ')
        FROM (
            SELECT i2r.route_network_element_id, outer_diameter, count(*) AS n_conduit
            FROM {schema}.rel_interest_to_route_element i2r
            INNER JOIN {schema}.span_equipment ON span_equipment.interest_id = i2r.interest_id
            GROUP BY i2r.route_network_element_id, span_equipment.outer_diameter
            ORDER BY i2r.route_network_element_id, span_equipment.outer_diameter
        ) conduit_label
        WHERE route_network_element_id = mrid
    ) AS label
FROM route_network.route_segment
WHERE EXISTS (
    SELECT NULL FROM {schema}.rel_interest_to_route_element i2r2
    WHERE i2r2.route_network_element_id = route_segment.mrid
)
"""

_ROUTE_NODE_VIEW = """
CREATE OR REPLACE VIEW {schema}.route_node AS
SELECT
    mrid,
    ST_AsGeoJSON(ST_Transform(coord, 4326)) AS coord,
    CASE
        WHEN inst.id IS NOT NULL THEN 'SDU'
        WHEN slack.id IS NOT NULL THEN 'ConduitSlack'
        ELSE routenode_kind
    END AS kind,
    routenode_function AS function,
    CASE
        WHEN inst.id IS NOT NULL THEN inst.name
        WHEN slack.id IS NOT NULL
            THEN cast(cast(slack.number_of_ends AS character varying) || ' stk' AS character varying(255))
        ELSE naming_name
    END AS name,
    mapping_method AS method,
    lifecycle_deployment_state
FROM route_network.route_node
LEFT OUTER JOIN {schema}.service_termination inst ON inst.route_node_id = route_node.mrid
LEFT OUTER JOIN {schema}.conduit_slack slack ON slack.route_node_id = route_node.mrid
WHERE coord IS NOT NULL AND marked_to_be_deleted = false
ORDER BY mrid
"""

_ROUTE_SEGMENT_VIEW = """
CREATE OR REPLACE VIEW {schema}.route_segment AS
SELECT
    route_segment.mrid,
    ST_AsGeoJSON(ST_Transform(route_segment.coord, 4326)) AS coord,
    routesegment_kind AS kind,
    mapping_method AS method,
    lifecycle_deployment_state,
    slabel.label AS name
FROM route_network.route_segment
LEFT OUTER JOIN {schema}.route_segment_label slabel ON slabel.mrid = route_segment.mrid
WHERE route_segment.coord IS NOT NULL AND route_segment.marked_to_be_deleted = false
ORDER BY route_segment.mrid
"""

_ROUTE_SEGMENT_TASK_STATUS_VIEW = """
CREATE OR REPLACE VIEW {schema}.route_segment_with_task_status AS
SELECT route_segment.*, work_task.status AS work_task_status
FROM route_network.route_segment
LEFT OUTER JOIN {schema}.work_task ON work_task.id = route_segment.work_task_mrid
"""

_ROUTE_NODE_TASK_STATUS_VIEW = """
CREATE OR REPLACE VIEW {schema}.route_node_with_task_status AS
SELECT route_node.*, work_task.status AS work_task_status
FROM route_network.route_node
LEFT OUTER JOIN {schema}.work_task ON work_task.id = route_node.work_task_mrid
"""

# route_segment reads route_segment_label, so order matters
VIEWS: tuple[tuple[str, str], ...] = (
    ("route_segment_label", _ROUTE_SEGMENT_LABEL_VIEW),
    ("route_node", _ROUTE_NODE_VIEW),
    ("route_segment", _ROUTE_SEGMENT_VIEW),
    ("route_segment_with_task_status", _ROUTE_SEGMENT_TASK_STATUS_VIEW),
    ("route_node_with_task_status", _ROUTE_NODE_TASK_STATUS_VIEW),
)


def create_view_statements(schema: str) -> list[sql.Composed]:
    return [
        sql.SQL(ddl).format(schema=sql.Identifier(schema))
        for _, ddl in VIEWS
    ]


def schema_statements(schema: str, *, include_views: bool = False) -> list[sql.Composed]:
    """Every DDL statement needed for the read model, in execution order."""
    statements = [create_schema_statement(schema)]
    for kind in EntityKind:
        statements.append(create_table_statement(schema, kind))
        statements.extend(create_index_statements(schema, kind))
    if include_views:
        statements.extend(create_view_statements(schema))
    return statements


__all__ = [
    "VIEWS",
    "create_index_statements",
    "create_schema_statement",
    "create_table_statement",
    "create_view_statements",
    "schema_statements",
]
