#!/usr/bin/env python3
"""
Web Front End - JSON API over a DatabaseRegistry

Every route answers with a result envelope ({success, message?, data?,
error?}). Query errors are reported inside a 200 envelope; bad requests
and rejected names get 400, unknown databases and tables 404.

Run:
    pip install -e .
    alphadb-web --port 5000
"""

import argparse
import logging
import os
from datetime import date, datetime

from flask import Flask, current_app, jsonify, request
from flask.json.provider import DefaultJSONProvider

from ..core.database import DEFAULT_DATA_ROOT
from ..core.errors import AlphaDBError, NotFound
from ..core.registry import DatabaseRegistry
from ..log import configure_logging

logger = logging.getLogger(__name__)


class AlphaJSONProvider(DefaultJSONProvider):
    """Render dates as ISO-8601 text"""

    @staticmethod
    def default(o):
        if isinstance(o, (date, datetime)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def failure(error: str, status: int = 400):
    return jsonify({'success': False, 'error': error}), status


def get_registry() -> DatabaseRegistry:
    return current_app.extensions['alphadb']


def open_database(name: str):
    """Loaded or on-disk database; never creates one"""
    return get_registry().get(name, create=False)


def create_app(data_root: str = None) -> Flask:
    """Application factory"""
    app = Flask(__name__)
    app.json = AlphaJSONProvider(app)
    app.config['DATA_ROOT'] = data_root or DEFAULT_DATA_ROOT

    registry = DatabaseRegistry(app.config['DATA_ROOT'])
    registry.reload()
    app.extensions['alphadb'] = registry

    @app.errorhandler(NotFound)
    def handle_not_found(e):
        return failure(str(e), 404)

    @app.errorhandler(AlphaDBError)
    def handle_store_error(e):
        return failure(str(e))

    @app.route('/api/query', methods=['POST'])
    def query():
        """Run one query against a database, creating the database on demand."""
        body = request.get_json(silent=True) or {}
        database, sql = body.get('database'), body.get('sql')
        if not database or not sql:
            return failure('Database and SQL query required')

        db = get_registry().get(database)
        return jsonify(db.execute(sql).to_dict())

    @app.route('/api/database/create', methods=['POST'])
    def create_database():
        body = request.get_json(silent=True) or {}
        name = body.get('name')
        if not name:
            return failure('Database name required')

        registry = get_registry()
        if registry.exists(name):
            logger.info("Database %s already exists on disk", name)
        registry.get(name)
        return jsonify({'success': True, 'message': f"Database '{name}' created successfully"})

    @app.route('/api/databases')
    def list_databases():
        return jsonify({'success': True, 'data': get_registry().names()})

    @app.route('/api/<database>/tables')
    def list_tables(database):
        return jsonify({'success': True, 'data': open_database(database).list_tables()})

    @app.route('/api/<database>/tables/<table>')
    def table_data(database, table):
        records = open_database(database).get_table(table).find_all()
        return jsonify({'success': True, 'data': records})

    @app.route('/api/<database>/tables/<table>', methods=['DELETE'])
    def drop_table(database, table):
        open_database(database).drop_table(table)
        return jsonify({'success': True, 'message': f"Table '{table}' dropped"})

    @app.route('/api/health')
    def health():
        return jsonify({
            'success': True,
            'status': 'running',
            'loadedDatabases': len(get_registry().loaded),
        })

    @app.route('/api/reload-databases', methods=['POST'])
    def reload_databases():
        loaded = get_registry().reload()
        return jsonify({'success': True, 'message': 'Databases reloaded', 'count': len(loaded)})

    return app


def main(argv=None):
    parser = argparse.ArgumentParser(description="AlphaDB web front end")
    parser.add_argument('-d', '--data-root', default=DEFAULT_DATA_ROOT,
                        help=f'Directory holding one sub-directory per database '
                             f'(default: {DEFAULT_DATA_ROOT})')
    parser.add_argument('--host', default=os.environ.get('ALPHADB_HOST', '127.0.0.1'))
    parser.add_argument('-p', '--port', type=int, default=int(os.environ.get('ALPHADB_PORT', 5000)))
    parser.add_argument('-v', '--verbose', action='store_true', help='Log debug output')
    args = parser.parse_args(argv)

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    app = create_app(args.data_root)
    logger.info("AlphaDB web interface on http://%s:%d (data root %s)",
                args.host, args.port, args.data_root)
    app.run(host=args.host, port=args.port)


if __name__ == '__main__':
    main()
