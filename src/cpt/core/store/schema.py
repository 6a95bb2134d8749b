# src/cpt/core/store/schema.py
"""SQLAlchemy table definitions for the engine's persistence schema.

The schema is owned by the workflow engine; cpt only reads and mutates rows.
These definitions cover the tables and columns cpt touches and are used to
build queries. Tables are created from this metadata only for tests and
local fixtures.

Uses SQLAlchemy Core (not ORM) for explicit control over queries.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

# === Workflow instances ===

workflow_instance_table = Table(
    "cop_workflow_instance",
    metadata,
    Column("id", String(128), primary_key=True),
    Column("state", Integer, nullable=False),  # WorkflowState index
    Column("priority", Integer, nullable=False),
    Column("last_mod_ts", DateTime, nullable=False),
    Column("ppool_id", String(32), nullable=False),
    Column("data", Text),
    Column("object_state", Text),
    Column("cs_waitmode", Integer),
    Column("min_numb_of_resp", Integer),
    Column("numb_of_waits", Integer),
    Column("timeout", DateTime),
    Column("creation_ts", DateTime, nullable=False),
    Column("classname", String(512), nullable=False),
)

workflow_instance_error_table = Table(
    "cop_workflow_instance_error",
    metadata,
    Column("workflow_instance_id", String(128), nullable=False, index=True),
    Column("exception", Text, nullable=False),
    Column("error_ts", DateTime, nullable=False),
)

# === Audit trail ===

audit_trail_event_table = Table(
    "cop_audit_trail_event",
    metadata,
    Column("seq_id", Integer, primary_key=True, autoincrement=True),
    Column("occurrence", DateTime, nullable=False),
    Column("conversation_id", String(64)),
    Column("loglevel", Integer, nullable=False),
    Column("context", String(128)),
    Column("instance_id", String(128), index=True),
    Column("correlation_id", String(128)),
    Column("transaction_id", String(128)),
    Column("long_message", Text),  # Transit-encoded, see core.audit_codec
    Column("message_type", String(256)),
)

# === Dependent operational rows ===

wait_table = Table(
    "cop_wait",
    metadata,
    Column("correlation_id", String(128), primary_key=True),
    Column("workflow_instance_id", String(128), nullable=False, index=True),
    Column("min_numb_of_resp", Integer, nullable=False),
    Column("timeout_ts", DateTime),
    Column("state", Integer, nullable=False),
    Column("priority", Integer, nullable=False),
    Column("ppool_id", String(32), nullable=False),
)

response_table = Table(
    "cop_response",
    metadata,
    Column("response_id", String(128), primary_key=True),
    Column("correlation_id", String(128), index=True),
    Column("response_ts", DateTime, nullable=False),
    Column("response", Text),
    Column("response_timeout", DateTime),
    Column("response_meta_data", String(4000)),
)

queue_table = Table(
    "cop_queue",
    metadata,
    Column("ppool_id", String(32), nullable=False),
    Column("priority", Integer, nullable=False),
    Column("last_mod_ts", DateTime, nullable=False),
    Column("workflow_instance_id", String(128), primary_key=True),
)

lock_table = Table(
    "cop_lock",
    metadata,
    Column("lock_id", String(128), primary_key=True),
    Column("correlation_id", String(128), nullable=False),
    Column("workflow_instance_id", String(128), nullable=False, index=True),
    Column("insert_ts", DateTime, nullable=False),
    Column("replied", String(1), nullable=False),
)

adapter_call_table = Table(
    "cop_adaptercall",
    metadata,
    Column("id", String(128), primary_key=True),
    Column("entityid", String(128), nullable=False),
    Column("adapterid", String(256), nullable=False),
    Column("priority", Integer, nullable=False),
    Column("defunct", String(1), nullable=False, default="0"),
    Column("dequeue_ts", DateTime),
    Column("methoddeclaringclass", String(1024), nullable=False),
    Column("methodname", String(1024), nullable=False),
    Column("methodsignature", String(2048), nullable=False),
    Column("args", Text),
    Column("workflowid", String(128), index=True),
)

# Tables that must exist for cpt to operate against a database.
REQUIRED_TABLES: tuple[str, ...] = tuple(metadata.tables.keys())
