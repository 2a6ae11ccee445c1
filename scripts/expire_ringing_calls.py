"""
Cleanup script for calls stuck in the ringing state.
Marks every call that has been ringing longer than the given number of minutes
(default 2) as missed, so history and missed-call badges stay accurate.

Usage: python scripts/expire_ringing_calls.py [minutes]
"""
import asyncio
import sys
from datetime import timedelta
from pathlib import Path

# Add backend to path
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))

from app.models.database import utcnow
from app.services.call import call_record_store

DEFAULT_MINUTES = 2


async def expire_ringing_calls(minutes: int):
    """Mark ringing calls older than `minutes` as missed."""
    print(f"🔍 Searching for calls ringing longer than {minutes} minute(s)...")

    now = utcnow()
    expired = await call_record_store.expire_stale_ringing(now - timedelta(minutes=minutes), ended_at=now)

    if not expired:
        print("✅ No stale ringing calls found. Database is clean!")
        return

    print(f"📞 Marked {len(expired)} call(s) as missed:")
    for record in expired:
        print(f"  - Call ID: {record.id}")
        print(f"    {record.caller_id} -> {record.receiver_id}")
        print(f"    Created: {record.created_at}")


async def main():
    """Main entry point."""
    minutes = int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_MINUTES
    await expire_ringing_calls(minutes)


if __name__ == "__main__":
    print("🧹 Ringing Call Cleanup Script")
    print("=" * 50)
    asyncio.run(main())
