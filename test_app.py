#!/usr/bin/env python3
"""
Simple smoke script to verify a running BALANCE Cipher intake relay.
"""

import requests
import time
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from wizard.payload import build_lead_payload

RELAY_PATH = "/api/applications"

def test_health_endpoint(base_url="http://localhost:8000"):
    """Test the health check endpoint."""
    try:
        response = requests.get(f"{base_url}/health", timeout=10)
        if response.status_code == 200:
            data = response.json()
            print(f"✅ Health check passed: {data}")
            return True
        else:
            print(f"❌ Health check failed: {response.status_code}")
            return False
    except requests.exceptions.RequestException as e:
        print(f"❌ Health check error: {e}")
        return False

def test_preflight(base_url="http://localhost:8000"):
    """OPTIONS must succeed with no body."""
    try:
        response = requests.options(f"{base_url}{RELAY_PATH}", timeout=10)
        if response.status_code == 204 and not response.content:
            print(f"✅ Preflight passed: {dict(response.headers)}")
            return True
        print(f"❌ Preflight failed: {response.status_code} {response.text}")
        return False
    except requests.exceptions.RequestException as e:
        print(f"❌ Preflight error: {e}")
        return False

def test_method_not_allowed(base_url="http://localhost:8000"):
    """GET must be refused."""
    try:
        response = requests.get(f"{base_url}{RELAY_PATH}", timeout=10)
        if response.status_code == 405:
            print(f"✅ Method check passed: {response.json()}")
            return True
        print(f"❌ Method check failed: {response.status_code}")
        return False
    except requests.exceptions.RequestException as e:
        print(f"❌ Method check error: {e}")
        return False

def test_invalid_json(base_url="http://localhost:8000"):
    """A broken body must be refused before reaching the CRM."""
    try:
        response = requests.post(
            f"{base_url}{RELAY_PATH}",
            data="{not json",
            headers={"Content-Type": "application/json"},
            timeout=10
        )
        if response.status_code == 400:
            print(f"✅ Invalid JSON test passed: {response.json()}")
            return True
        print(f"❌ Invalid JSON test failed: {response.status_code}")
        return False
    except requests.exceptions.RequestException as e:
        print(f"❌ Invalid JSON test error: {e}")
        return False

def test_lead_relay(base_url="http://localhost:8000"):
    """Relay a sample lead. Needs CRM_BASE_URL / CRM_API_KEY on the server."""
    payload = build_lead_payload(
        "Smoke",
        "Test",
        "smoke.test@example.com",
        "SMKT2345",
        client_context={"userAgent": "relay-smoke-test"}
    )

    try:
        response = requests.post(f"{base_url}{RELAY_PATH}", json=payload, timeout=30)

        if response.status_code == 200:
            print(f"✅ Lead relay test passed: {response.json()}")
            return True
        else:
            print(f"❌ Lead relay test failed: {response.status_code}")
            print(f"Response: {response.text}")
            return False

    except requests.exceptions.RequestException as e:
        print(f"❌ Lead relay test error: {e}")
        return False

def main():
    """Run all checks."""
    print("🚀 Testing BALANCE Cipher Intake Relay")
    print("=" * 50)

    base_url = os.getenv("RELAY_BASE_URL", "http://localhost:8000")

    # Wait for app to start
    print("⏳ Waiting for application to start...")
    time.sleep(5)

    tests = [
        ("Health Check", lambda: test_health_endpoint(base_url)),
        ("Preflight", lambda: test_preflight(base_url)),
        ("Method Not Allowed", lambda: test_method_not_allowed(base_url)),
        ("Invalid JSON", lambda: test_invalid_json(base_url)),
        ("Lead Relay", lambda: test_lead_relay(base_url))
    ]

    passed = 0
    total = len(tests)

    for test_name, test_func in tests:
        print(f"\n🧪 Running {test_name}...")
        if test_func():
            passed += 1
        else:
            print(f"❌ {test_name} failed")

    print("\n" + "=" * 50)
    print(f"📊 Test Results: {passed}/{total} tests passed")

    if passed == total:
        print("🎉 All checks passed! Relay is working correctly.")
        return 0
    else:
        print("⚠️  Some checks failed. Check the relay logs for details.")
        return 1

if __name__ == "__main__":
    sys.exit(main())
