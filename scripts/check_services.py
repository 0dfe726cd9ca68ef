"""
Connectivity check for the services the tutor depends on.

Checks that credentials are present, then probes:
1. Supabase auth health endpoint
2. DeepSeek model listing (validates the API key)
3. A running tutor API (optional, `--api-url`)

Usage:
    python scripts/check_services.py [--api-url http://localhost:8000]
"""

import argparse
import os
import sys
from typing import Optional

import requests

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(project_root, "ai_english_tutor", "src"))

from ai_english_tutor.config import Settings

TIMEOUT = 10


def check_supabase(url: Optional[str], key: Optional[str]) -> bool:
    print("\n🔐 Supabase")
    if not url or not key:
        print("❌ Missing SUPABASE_URL or SUPABASE_ANON_KEY")
        return False

    health_url = f"{url.rstrip('/')}/auth/v1/health"
    try:
        response = requests.get(health_url, timeout=TIMEOUT, headers={"apikey": key})
    except requests.RequestException as e:
        print(f"❌ HTTP request failed: {e}")
        return False

    print(f"   Status: {response.status_code}")
    if response.ok:
        print("✅ Supabase auth is reachable")
        return True
    print(f"❌ Unexpected response: {response.text[:200]}")
    return False


def check_deepseek(base_url: str, api_key: Optional[str]) -> bool:
    print("\n🤖 DeepSeek")
    if not api_key:
        print("❌ Missing DEEPSEEK_API_KEY (AI features will use placeholder content)")
        return False

    try:
        response = requests.get(
            f"{base_url.rstrip('/')}/models",
            timeout=TIMEOUT,
            headers={"Authorization": f"Bearer {api_key}"},
        )
    except requests.RequestException as e:
        print(f"❌ HTTP request failed: {e}")
        return False

    print(f"   Status: {response.status_code}")
    if response.status_code == 401:
        print("❌ API key rejected")
        return False
    if response.ok:
        print("✅ DeepSeek API key accepted")
        return True
    print(f"❌ Unexpected response: {response.text[:200]}")
    return False


def check_api(api_url: str) -> bool:
    print(f"\n🌐 Tutor API at {api_url}")
    try:
        response = requests.get(api_url, timeout=TIMEOUT)
        body = response.json()
    except (requests.RequestException, ValueError) as e:
        print(f"❌ Health check failed: {e}")
        return False

    if response.ok and body.get("status") == "ok":
        print(f"✅ {body.get('service')} v{body.get('version')}")
        print(f"   Supabase configured: {body.get('supabase_configured')}")
        print(f"   LLM configured: {body.get('llm_configured')}")
        return True
    print(f"❌ Unexpected response ({response.status_code}): {body}")
    return False


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--api-url", help="Base URL of a running tutor API")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    results = [
        check_supabase(settings.supabase_url, settings.supabase_anon_key),
        check_deepseek(settings.deepseek_base_url, settings.deepseek_api_key),
    ]
    if args.api_url:
        results.append(check_api(args.api_url))

    print("\n" + "=" * 40)
    print(f"{sum(results)}/{len(results)} checks passed")
    return 0 if all(results) else 1


if __name__ == "__main__":
    raise SystemExit(main())
