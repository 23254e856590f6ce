#!/usr/bin/env python3
"""
API Setup Script
Helps configure API keys and test the API endpoints
"""

import os
import secrets
import string
from pathlib import Path

import requests
from dotenv import load_dotenv


def generate_api_key(length=32):
    """Generate a secure random API key"""
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def setup_api_keys(env_file=Path('.env'), example_file=Path('env.example')):
    """Setup API keys in environment file"""
    print("🔑 API Key Setup")
    print("=" * 50)

    if not env_file.exists():
        if example_file.exists():
            env_file.write_text(example_file.read_text())
            print(f"📄 Created {env_file} from {example_file}")
        else:
            env_file.touch()
            print(f"📄 Created empty {env_file}")

    content = env_file.read_text()

    # Check if API_KEYS already has a value
    for line in content.splitlines():
        if line.startswith('API_KEYS=') and line.split('=', 1)[1].strip():
            print("✅ API_KEYS already configured in .env")
            return True

    dev_key = generate_api_key()
    prod_key = generate_api_key()

    print("Generated API Keys:")
    print(f"  Development: {dev_key}")
    print(f"  Production:  {prod_key}")
    print()
    print("⚠️  IMPORTANT: Save these keys securely!")
    print()

    lines = [line for line in content.splitlines() if not line.startswith('API_KEYS=')]
    lines.append(f"API_KEYS={dev_key},{prod_key}")
    env_file.write_text('\n'.join(lines) + '\n')

    print("✅ API keys added to .env file")
    return True


def test_api_connection(base_url=None):
    """Test API connection"""
    print("\n🧪 Testing API Connection")
    print("=" * 50)

    base_url = base_url or f"http://localhost:{os.getenv('PORT', '5000')}"

    try:
        response = requests.get(f"{base_url}/api/v1/health", timeout=5)
        if response.status_code == 200:
            backend = response.json().get('services', {}).get('surface_backend', {})
            print(f"✅ API health check passed (backend: {backend.get('name')} {backend.get('version', '')})")
            return True
        else:
            print(f"❌ API health check failed: {response.status_code}")
            return False

    except requests.exceptions.ConnectionError:
        print("❌ Cannot connect to API. Is the server running?")
        print("   Start the server with: python start_server.py")
        return False
    except requests.exceptions.RequestException as e:
        print(f"❌ Error testing API: {e}")
        return False


def show_usage_examples():
    """Show usage examples"""
    print("\n📚 Usage Examples")
    print("=" * 50)

    print("1. Correct EXIF orientation with cURL:")
    print("""
curl -X POST "http://localhost:5000/api/v1/orient" \\
  -H "X-API-Key: your-api-key" \\
  -F "image=@product.jpg"
""")

    print("\n2. Resize and compress with Python:")
    print("""
import requests

response = requests.post(
    "http://localhost:5000/api/v1/resize",
    headers={"X-API-Key": "your-api-key"},
    files={"image": open("product.jpg", "rb")},
    data={"max_dimension": 2048, "target_bytes": 5242880}
)

print(response.json()["metadata"])
""")

    print("\n3. Generate a reflection strip:")
    print("""
curl -X POST "http://localhost:5000/api/v1/reflection" \\
  -H "X-API-Key: your-api-key" \\
  -F "image=@cutout.png" -F "intensity=0.65" -F "height=0.6" -F "blur=4"
""")


def main():
    """Main setup function"""
    print("🚀 Imaging API Setup")
    print("=" * 50)

    if not setup_api_keys():
        return

    load_dotenv()

    if test_api_connection():
        print("\n🎉 Setup complete! API is ready to use.")
        show_usage_examples()
    else:
        print("\n⚠️  Setup complete, but API server is not running.")
        print("   Start the server with: python start_server.py")


if __name__ == "__main__":
    main()
