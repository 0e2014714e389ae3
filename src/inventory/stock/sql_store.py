"""SQL stock store — stock counters in a relational table via SQLAlchemy Core.

Decrements are a single conditional ``UPDATE ... WHERE quantity >= :qty``, so
two requests racing for the last unit cannot both succeed: the database applies
one update and the other matches no row.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine

from inventory.stock.store_port import StockRecord, StockStore

logger = structlog.get_logger(__name__)

metadata = MetaData()

stock_records = Table(
    "stock_records",
    metadata,
    Column("product_id", String(64), primary_key=True),
    Column("branch_id", String(64), nullable=False, index=True),
    Column("product_name", String(255), nullable=False, default=""),
    Column("quantity", Integer, nullable=False, default=0),
    Column("is_managed", Boolean, nullable=False, default=True),
    Column("low_stock_threshold", Integer, nullable=False, default=0),
    Column("updated_at", DateTime(timezone=True)),
)


def _to_record(row) -> StockRecord:
    return StockRecord(
        product_id=row.product_id,
        branch_id=row.branch_id,
        product_name=row.product_name,
        quantity=row.quantity,
        is_managed=row.is_managed,
        low_stock_threshold=row.low_stock_threshold,
        updated_at=row.updated_at,
    )


class SQLStockStore(StockStore):
    """Stock store over any SQLAlchemy-supported database."""

    def __init__(self, engine: Engine | str):
        self._engine = create_engine(engine) if isinstance(engine, str) else engine

    def setup(self):
        """Create the stock table if it does not exist."""
        metadata.create_all(self._engine)

    def drop(self):
        metadata.drop_all(self._engine)

    def _select(self, conn, product_id: str) -> StockRecord | None:
        row = conn.execute(select(stock_records).where(stock_records.c.product_id == str(product_id))).first()
        return _to_record(row) if row is not None else None

    def get(self, product_id: str) -> StockRecord | None:
        with self._engine.connect() as conn:
            return self._select(conn, product_id)

    def put(self, record: StockRecord) -> StockRecord:
        values = {
            "branch_id": str(record.branch_id),
            "product_name": record.product_name,
            "quantity": record.quantity,
            "is_managed": record.is_managed,
            "low_stock_threshold": record.low_stock_threshold,
            "updated_at": record.updated_at or datetime.now(UTC),
        }
        with self._engine.begin() as conn:
            result = conn.execute(
                update(stock_records).where(stock_records.c.product_id == str(record.product_id)).values(**values)
            )
            if result.rowcount == 0:
                conn.execute(insert(stock_records).values(product_id=str(record.product_id), **values))
            return self._select(conn, record.product_id)

    def decrement(self, product_id: str, quantity: int) -> StockRecord | None:
        with self._engine.begin() as conn:
            result = conn.execute(
                update(stock_records)
                .where(
                    stock_records.c.product_id == str(product_id),
                    stock_records.c.quantity >= quantity,
                )
                .values(
                    quantity=stock_records.c.quantity - quantity,
                    updated_at=datetime.now(UTC),
                )
            )
            if result.rowcount == 0:
                logger.info("Conditional stock decrement refused", product_id=str(product_id), quantity=quantity)
                return None
            return self._select(conn, product_id)

    def increment(self, product_id: str, quantity: int) -> StockRecord | None:
        with self._engine.begin() as conn:
            result = conn.execute(
                update(stock_records)
                .where(stock_records.c.product_id == str(product_id))
                .values(
                    quantity=stock_records.c.quantity + quantity,
                    updated_at=datetime.now(UTC),
                )
            )
            if result.rowcount == 0:
                return None
            return self._select(conn, product_id)

    def list_for_branch(self, branch_id: str) -> list[StockRecord]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(stock_records)
                .where(stock_records.c.branch_id == str(branch_id))
                .order_by(stock_records.c.quantity)
            ).all()
            return [_to_record(row) for row in rows]
