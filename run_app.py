#!/usr/bin/env python3
"""
ERP Notifications Runner
========================

Runs the notification engine in its different process roles.

Usage:
    python run_app.py                    # Run API server (default)
    python run_app.py --mode dev         # API with auto-reload
    python run_app.py --mode prod        # API without reload, multiple workers
    python run_app.py --mode worker      # Celery worker for the notifications queue
    python run_app.py --mode beat        # Celery beat (scheduled sweeps)
    python run_app.py --port 8001        # Custom port
"""

import argparse
import os
import sys

def print_banner():
    """Print application banner"""
    banner = """
╔═══════════════════════════════════════════════════════╗
║              🔔 ERP Notifications Engine              ║
╚═══════════════════════════════════════════════════════╝
    """
    print(banner)

def check_environment():
    """Check if environment is properly set up"""
    print("\n🔍 Checking environment...")

    if os.path.exists(".env"):
        print("✅ .env file found")
    else:
        print("⚠️  .env file not found, using process environment")

    if not os.environ.get("DATABASE_URL") and not os.path.exists(".env"):
        print("❌ DATABASE_URL is not set")
        return False

    return True

def run_api(host="0.0.0.0", port=8000, reload=True, workers=1):
    """Run the FastAPI application"""
    print(f"\n🚀 Starting API on {host}:{port}")
    print(f"📖 API Docs: http://localhost:{port}/api/docs")
    print("\n" + "=" * 50)

    try:
        import uvicorn
        uvicorn.run(
            "app.main:app",
            host=host,
            port=port,
            reload=reload,
            workers=None if reload else workers,
            log_level="info"
        )
    except KeyboardInterrupt:
        print("\n👋 Server stopped by user")

def run_worker(concurrency=None):
    """Run a Celery worker consuming the notifications queue"""
    print("\n⚙️  Starting Celery worker (queue: notifications)")
    from app.core.celery_app import celery_app

    argv = ["worker", "--loglevel=INFO", "--queues=notifications"]
    if concurrency:
        argv.append(f"--concurrency={concurrency}")
    celery_app.worker_main(argv)

def run_beat():
    """Run Celery beat for the scheduled sweeps"""
    print("\n⏰ Starting Celery beat")
    from app.core.celery_app import celery_app

    celery_app.start(["beat", "--loglevel=INFO"])

def main():
    parser = argparse.ArgumentParser(
        description="ERP Notifications Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_app.py                      # API on port 8000
  python run_app.py --mode worker        # Background dispatch worker
  python run_app.py --mode beat          # Scheduled sweeps
        """
    )

    parser.add_argument(
        "--mode",
        choices=["main", "dev", "prod", "worker", "beat"],
        default="main",
        help="Process role (default: main)"
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=4,
        help="API workers in prod mode, worker concurrency in worker mode"
    )
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload"
    )

    args = parser.parse_args()

    print_banner()

    if not check_environment():
        return 1

    if args.mode == "worker":
        run_worker(args.workers)
    elif args.mode == "beat":
        run_beat()
    else:
        reload = not args.no_reload and args.mode != "prod"
        run_api(args.host, args.port, reload, args.workers)

    return 0

if __name__ == "__main__":
    try:
        exit_code = main()
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        sys.exit(0)
