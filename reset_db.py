import asyncio
import sys
import os

# Aggiungi backend/ alla PYTHONPATH per importare quickpay.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from quickpay.core.database import engine
from quickpay.models import Base


async def reset():
    print("Connessione al database, eliminazione tabelle clients, payments, invoice_items...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tabelle eliminate. Creazione nuove tabelle...")
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print("Database resettato con successo!")

if __name__ == "__main__":
    asyncio.run(reset())
