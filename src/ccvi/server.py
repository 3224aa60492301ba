"""
CCVI Dashboard - Flask Application
Local backend serving indicators, vulnerability rows and exports from storage
"""

import logging
import os

import pandas as pd
from flask import Flask, jsonify, request
from flask_cors import CORS

from . import config
from .storage import MemStorage

logger = logging.getLogger(__name__)


EXPORT_FORMATS = ['json', 'csv']


def create_app(storage=None) -> Flask:
    """
    Build the Flask app around a storage object.

    Args:
        storage: Object with get_all_indicators / get_vulnerability_data /
            generate_export_data; a seeded MemStorage by default
    """
    app = Flask(__name__)
    CORS(app)

    store = storage if storage is not None else MemStorage()

    # =========================================================================
    # API Routes
    # =========================================================================

    @app.route('/api/indicators')
    def api_indicators():
        """All climate indicators."""
        try:
            return jsonify(store.get_all_indicators())
        except Exception:
            logger.exception("Failed to fetch indicators")
            return jsonify({'message': 'Failed to fetch indicators'}), 500

    @app.route('/api/vulnerability-data')
    def api_vulnerability_data():
        """Vulnerability rows filtered by ?state= and ?indicator=."""
        state = request.args.get('state')
        indicator = request.args.get('indicator')
        try:
            return jsonify(store.get_vulnerability_data(state, indicator))
        except Exception:
            logger.exception(f"Failed to fetch vulnerability data (state={state}, indicator={indicator})")
            return jsonify({'message': 'Failed to fetch vulnerability data'}), 500

    @app.route('/api/export-data', methods=['POST'])
    def api_export_data():
        """Export rows matching {format, filters}; csv data comes back as text."""
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({'message': 'Request body must be a JSON object'}), 400

        export_format = str(body.get('format') or 'json').lower()
        if export_format not in EXPORT_FORMATS:
            return jsonify({'message': f"Unsupported export format: {export_format}"}), 400

        filters = body.get('filters') or {}
        if not isinstance(filters, dict):
            return jsonify({'message': 'filters must be an object'}), 400

        try:
            rows = store.generate_export_data(filters)
        except Exception:
            logger.exception("Failed to export data")
            return jsonify({'message': 'Failed to export data'}), 500

        data = pd.DataFrame(rows).to_csv(index=False) if export_format == 'csv' else rows
        logger.info(f"Exported {len(rows)} rows as {export_format}")
        return jsonify({
            'success': True,
            'data': data,
            'message': 'Data exported successfully',
        })

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    return app


# =============================================================================
# Main
# =============================================================================

if __name__ == '__main__':
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    port = int(os.environ.get('PORT', 5000))
    create_app().run(host='0.0.0.0', port=port, debug=False)
