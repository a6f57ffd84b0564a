# app/core/database.py
import asyncpg
from app.core.config import settings
import logging
import json

logger = logging.getLogger(__name__)

async def create_pool(database_url: str = None) -> asyncpg.Pool:
    return await asyncpg.create_pool(database_url or settings.DATABASE_URL, min_size=1, max_size=10)

async def create_tables(conn):
    try:
        await conn.execute('''
        DO $$
        BEGIN
            IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'order_status') THEN
                CREATE TYPE order_status AS ENUM ('initiated', 'pending', 'paid', 'failed', 'unhandled');
            END IF;
        END$$;
        ''')

        await conn.execute('''
        CREATE TABLE IF NOT EXISTS orders (
            tran_id VARCHAR(64) PRIMARY KEY,
            status order_status NOT NULL DEFAULT 'initiated',
            total_amount NUMERIC(12, 2) NOT NULL,
            currency VARCHAR(8) NOT NULL,
            customer_name VARCHAR(255),
            customer_email VARCHAR(255),
            items JSONB NOT NULL DEFAULT '[]'::jsonb,
            gateway_status VARCHAR(255),
            val_id VARCHAR(255),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        )
        ''')

        await conn.execute('''
        CREATE TABLE IF NOT EXISTS activity_logs (
            id SERIAL PRIMARY KEY,
            tran_id VARCHAR(64),
            action VARCHAR(255) NOT NULL,
            details JSONB,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        )
        ''')

        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise

async def log_activity(conn, action, tran_id=None, details=None):
    """Record an order transition in the activity log"""
    try:
        if details is not None and not isinstance(details, str):
            try:
                details = json.dumps(details, default=str)
            except Exception:
                details = json.dumps(str(details))
        await conn.execute('''
            INSERT INTO activity_logs (tran_id, action, details)
            VALUES ($1, $2, $3)
        ''', tran_id, action, details)
    except Exception as e:
        logger.error(f"Error logging activity: {e}")
        raise
