#!/usr/bin/env python3
"""
Startup script for the imaging server with API
"""

import os
import sys
from pathlib import Path


def check_environment():
    """Check if environment is properly configured"""
    print("🔍 Checking environment...")

    # Check if .env exists
    if not Path('.env').exists():
        print("⚠️  .env file not found, using defaults")
        print("   Copy env.example to .env to configure the server")

    from dotenv import load_dotenv
    load_dotenv()

    api_keys = os.getenv('API_KEYS')
    if not api_keys:
        print("⚠️  API_KEYS not configured in .env, the development key will be accepted")
        print("   Run: python setup_api.py")
    else:
        print("✅ API keys configured")

    for name in ('RESIZE_MAX_DIMENSION', 'RESIZE_TARGET_BYTES', 'REFLECTION_MAX_WORKERS', 'API_MAX_FILE_SIZE_MB'):
        value = os.getenv(name)
        if value is not None and not value.strip().isdigit():
            print(f"❌ {name} must be a positive integer, got '{value}'")
            return False

    return True


def start_server():
    """Start the Flask server"""
    print("\n🚀 Starting Imaging Server...")
    print("=" * 50)

    try:
        from app import app

        port = int(os.getenv('PORT', '5000'))
        print("✅ Server starting successfully!")
        print("\n📡 Available endpoints:")
        print(f"   API Health:      http://localhost:{port}/api/v1/health")
        print(f"   Orientation:     http://localhost:{port}/api/v1/orient")
        print(f"   Resize/Compress: http://localhost:{port}/api/v1/resize")
        print(f"   Reflection:      http://localhost:{port}/api/v1/reflection")
        print(f"   Reflections:     http://localhost:{port}/api/v1/reflections")
        print("\n" + "=" * 50)

        app.run(debug=True, host='0.0.0.0', port=port)

    except Exception as e:
        print(f"❌ Error starting server: {e}")
        return False


def main():
    """Main startup function"""
    print("🎨 Product Photo Imaging Server")
    print("=" * 50)

    if not check_environment():
        print("\n❌ Environment check failed. Please fix the issues above.")
        sys.exit(1)

    start_server()


if __name__ == "__main__":
    main()
