"""
Flask application for the burn care engine.
Serves the burns API blueprint with CORS enabled.
"""

import os
import logging

from flask import Flask, jsonify
from flask_cors import CORS

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def create_app() -> Flask:
    """Build the Flask app and register API blueprints"""
    app = Flask(__name__)
    CORS(app)

    # Register Burns API
    from api.burns_api import burns_bp
    app.register_blueprint(burns_bp)
    logger.info("Burns API registered successfully")

    @app.route('/health')
    def health():
        return jsonify({'status': 'healthy', 'service': 'burn-care-engine'})

    return app

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8084))
    create_app().run(host='0.0.0.0', port=port, debug=os.environ.get('FLASK_DEBUG') == '1')
