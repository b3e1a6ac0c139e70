import argparse
import logging
import sys

from smartmarks import create_app

logging.getLogger("werkzeug").disabled = True
sys.modules["flask.cli"].show_server_banner = lambda *x: None


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="smartmarks", description="Run the Smartmarks web server."
    )
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    print(f"Smartmarks serving bookmarks on http://{args.host}:{args.port}", flush=True)
    # one worker thread per open long-poll request
    app.run(host=args.host, port=args.port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
