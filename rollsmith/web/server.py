"""
Web interface for rollsmith.

Flask app exposing the dice engine as a JSON API.
- /api/roll: Evaluate a formula (plain, check or damage roll)
- /api/simplify: Simplify a formula without rolling
- /api/size-roll: Step dice by size
- /api/functions: List registered function terms
"""

import logging
from typing import Optional

from flask import Flask, jsonify

from rollsmith import __version__
from rollsmith.core.config import Config, get_config
from rollsmith.web.blueprints import api_bp

logger = logging.getLogger(__name__)


def create_app(config: Optional[Config] = None) -> Flask:
    """
    Create the Flask app.

    Args:
        config: Configuration to use (default: the shared config)

    Returns:
        Flask app
    """
    config = config or get_config()

    app = Flask(__name__)
    app.config['DEBUG'] = config.debug
    app.config['ROLLSMITH_CONFIG'] = config

    app.register_blueprint(api_bp)

    @app.route('/')
    def index():
        """Service description."""
        return jsonify({
            'name': 'rollsmith',
            'version': __version__,
            'endpoints': ['/api/roll', '/api/simplify', '/api/size-roll', '/api/functions']
        })

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"Unhandled server error: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    logger.debug(f"Created app with {config}")
    return app


def main():
    """Run development server."""
    import argparse
    from rollsmith.core.logging_config import setup_logging

    config = get_config()

    parser = argparse.ArgumentParser(description='rollsmith Web API')
    parser.add_argument('--host', default=config.host, help='Host to bind to')
    parser.add_argument('--port', type=int, default=config.port, help='Port to bind to')
    parser.add_argument('--debug', action='store_true', default=config.debug, help='Enable debug mode')

    args = parser.parse_args()

    setup_logging(level=config.log_level, log_file=config.log_file)
    app = create_app(config)

    print(f"\n╔══════════════════════════════════════════════════╗")
    print(f"║     rollsmith Web API                            ║")
    print(f"╚══════════════════════════════════════════════════╝")
    print(f"")
    print(f"  Server URL:       http://{args.host}:{args.port}")
    print(f"  Try:              POST /api/roll {{\"formula\": \"1d20 + 5\"}}")
    print(f"")
    print(f"  Press Ctrl+C to stop")
    print(f"")

    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == '__main__':
    main()
