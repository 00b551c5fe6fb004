"""Run one search against the real Places API and Supabase.

Usage (from cafe-hopper/, with backend/.env filled in):
  python smoke_search.py "verve" 36.996 -122.060
"""

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv("backend/.env")
sys.path.insert(0, str(Path(__file__).resolve().parent / "backend" / "src"))

from config import Configuration
from models import LatLng, SearchRequest
from services.cafe_search import search_cafes
from services.cafe_store import SupabaseCafeStore
from services.google_places import GooglePlacesClient


async def main():
    cfg = Configuration.from_env()
    cfg.require_google_maps()
    cfg.require_supabase()

    query = sys.argv[1] if len(sys.argv) > 1 else "cafe"
    geo = LatLng(lat=float(sys.argv[2]), lng=float(sys.argv[3])) if len(sys.argv) > 3 else None
    req = SearchRequest(query=query, radius=5000, geolocation=geo, sort_by="distance" if geo else "relevance")

    print(f"=== Searching: {query} ===")
    result = await search_cafes(req, GooglePlacesClient(cfg), SupabaseCafeStore(cfg), cfg)
    if result.error:
        print(f"error ({result.error_kind}): {result.error}")
        return

    for i, cafe in enumerate(result.cafes, 1):
        print(f"{i}. {cafe.name}  [{cafe.id}]")
        print(f"   {cafe.address}  rating={cafe.rating} reviews={cafe.num_reviews}")
    print()
    print(f"=== Summary ===")
    print(f"returned={len(result.cafes)} known={len(result.known_ids)} new={len(result.persisted_ids)}")


if __name__ == "__main__":
    asyncio.run(main())
