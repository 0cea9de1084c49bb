import asyncio
import os
import sys

# Ensure backend path is in sys.path
if os.path.exists("backend"):
    sys.path.append(os.path.join(os.getcwd(), "backend"))
    migrations_dir = os.path.join(os.getcwd(), "backend", "migrations")
else:
    sys.path.append(os.getcwd())
    migrations_dir = os.path.join(os.getcwd(), "migrations")

from dspace_api.infra.postgres import close_pool, get_pool


def pending_files(requested: list[str]) -> list[str]:
    """Return the migration files to run, all of them in name order when none are named."""
    if requested:
        return requested
    return sorted(name for name in os.listdir(migrations_dir) if name.endswith(".sql"))


async def apply_migrations(filenames: list[str]) -> None:
    pool = await get_pool()
    try:
        for filename in filenames:
            migration_path = os.path.join(migrations_dir, filename)
            if not os.path.exists(migration_path):
                print(f"Migration file not found: {migration_path}")
                sys.exit(1)

            print(f"Applying migration: {filename}")
            with open(migration_path, "r") as f:
                sql = f.read()
            async with pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(sql)
    finally:
        await close_pool()
    print(f"Applied {len(filenames)} migration(s).")


if __name__ == "__main__":
    asyncio.run(apply_migrations(pending_files(sys.argv[1:])))
