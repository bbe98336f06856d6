#!/usr/bin/env python3
"""
Run the FastAPI backend server.

Usage:
    python run_api.py
"""

import uvicorn

from config.settings import APP_NAME, ApiConfig

if __name__ == "__main__":
    print(f"🚀 Starting {APP_NAME} API server...")
    print(f"📡 API will be available at: http://localhost:{ApiConfig.PORT}")
    print(f"📚 Documentation at: http://localhost:{ApiConfig.PORT}/docs")
    print("🛑 Press CTRL+C to stop\n")

    try:
        # reload=True needs the app as an import string rather than the app object
        uvicorn.run(
            "api.main:app",
            host=ApiConfig.HOST,
            port=ApiConfig.PORT,
            reload=True  # Enable auto-reload during development
        )
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        import traceback
        traceback.print_exc()
