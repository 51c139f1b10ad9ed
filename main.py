"""
PQA Scoring Engine - Main Entry Point
======================================
Run this file to start the FastAPI server.

Usage:
    python main.py                    # Start server on port 8000
    python main.py --port 8080        # Start server on custom port
    python main.py --reload           # Start with auto-reload (dev mode)

API Documentation:
    http://localhost:8000/docs        # Swagger UI
    http://localhost:8000/redoc       # ReDoc
"""

import argparse
import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

BANNER_WIDTH = 64


def render_banner(lines):
    """Box the startup lines; None draws a separator. Long lines widen the box."""
    width = max([BANNER_WIDTH - 4] + [len(line) for line in lines if line is not None])
    rows = ["╔" + "═" * (width + 4) + "╗"]
    for line in lines:
        if line is None:
            rows.append("╠" + "═" * (width + 4) + "╣")
        else:
            rows.append("║  " + line.ljust(width) + "  ║")
    rows.append("╚" + "═" * (width + 4) + "╝")
    return "\n" + "\n".join("    " + row for row in rows) + "\n"


def main():
    parser = argparse.ArgumentParser(description="PQA Scoring Engine API Server")
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind the server to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )

    args = parser.parse_args()

    from pqa_engine import __version__
    from pqa_engine.config.settings import ENGINE_CONFIG

    print(render_banner([
        "PQA SCORING ENGINE".center(BANNER_WIDTH - 4),
        f"Version {__version__}".center(BANNER_WIDTH - 4),
        None,
        f"Server:    http://{args.host}:{args.port}",
        f"Docs:      http://localhost:{args.port}/docs",
        f"Health:    http://localhost:{args.port}/api/health",
        f"Scoring workers per recompute: {ENGINE_CONFIG['max_workers']}",
    ]))

    uvicorn.run(
        "pqa_engine.api.endpoints:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
    )


if __name__ == "__main__":
    main()
