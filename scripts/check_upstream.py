"""
Smoke test against the live entscheidsuche.ch API
"""
import asyncio
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from entscheidsuche.mcp import handlers
from entscheidsuche.pipeline.collectors.entscheidsuche_client import create_client


async def main():
    """Run each tool once against the real upstream"""
    client = create_client()

    print("=" * 80)
    print("Entscheidsuche Service - Upstream Check")
    print("=" * 80)
    print()

    # Test 1: search
    print("Test 1: search_decisions")
    print("-" * 80)
    result = await handlers.search_decisions(client, "Urheberrecht", size=3)
    if result.is_error:
        print(f"❌ {result.text}")
        return

    print(f"✅ {result.data['totalResults']} decisions found, showing {len(result.data['results'])}:")
    for i, hit in enumerate(result.data["results"], 1):
        print(f"\n{i}. {hit['signature']}")
        print(f"   - court: {hit['court']}")
        print(f"   - date: {hit['date']}")
        print(f"   - url: {hit['documentUrl']}")

    print()
    print("=" * 80)
    print()

    # Test 2: document urls for the first hit
    if result.data["results"]:
        signature = result.data["results"][0]["signature"]
        print(f"Test 2: get_document_urls ({signature})")
        print("-" * 80)
        urls = await handlers.get_document_urls(client, signature)
        print(urls.text)
        print()
        print("=" * 80)
        print()

    # Test 3: courts of one canton
    print("Test 3: list_courts (ZH)")
    print("-" * 80)
    courts = await handlers.list_courts(client, "ZH")
    print(courts.text)

    print()
    print("=" * 80)
    print("Done!")
    print("=" * 80)


if __name__ == "__main__":
    asyncio.run(main())
