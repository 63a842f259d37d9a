#!/usr/bin/env python3
"""
Quick start script for the PropertyGPT API server.

Usage:
    python run.py
    python run.py --port 8080
    python run.py --no-reload
"""

import argparse
import uvicorn

from propertygpt.config import get_settings


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the PropertyGPT API server")
    parser.add_argument("--host", default=settings.HOST, help=f"Host to bind to (default: {settings.HOST})")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"Port to listen on (default: {settings.PORT})")
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")

    args = parser.parse_args()

    print("=" * 60)
    print("  PropertyGPT - Conversational Real Estate Assistant API")
    print("=" * 60)
    print(f"\n  Starting server at http://{args.host}:{args.port}")
    print(f"  API Docs: http://localhost:{args.port}/docs")
    print(f"  Intent routing: {'OpenAI' if settings.llm_configured and settings.USE_LLM_ROUTER else 'heuristic'}")
    print(f"  Market data: {settings.MARKET_DATA_API_URL or 'bundled sample data'}")
    print(f"  Auto-reload: {'disabled' if args.no_reload else 'enabled'}")
    print("\n" + "=" * 60 + "\n")

    uvicorn.run(
        "propertygpt.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
