# app.py - json api for the sweet shop
# run this file starting the server: python app.py
# or: flask --app app run

import logging
from datetime import datetime, timezone

import click
from flask import Flask, jsonify, request
from flask.logging import default_handler
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

import services
from errors import BadRequest, ShopError
from models import db
from seed import seed_defaults


def create_app(config=None):
    app = Flask(__name__)
    app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///sweetshop.db'
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = 'sweet-shop-dev-key'
    app.config['RESET_SECRET'] = 'reset123'
    app.config['RESTOCK_STEP'] = 10
    app.config['HISTORY_LIMIT'] = 50
    app.config['HASH_PASSWORDS'] = False  # plaintext by default, same as the demo data
    app.config['SEED_ON_STARTUP'] = True
    app.config['LOG_LEVEL'] = 'INFO'

    # SWEETSHOP_RESET_SECRET=..., SWEETSHOP_HASH_PASSWORDS=true, ...
    app.config.from_prefixed_env('SWEETSHOP')
    if config:
        app.config.update(config)

    _setup_logging(app)
    db.init_app(app)

    # setup database and default data
    with app.app_context():
        db.create_all()
        if app.config['SEED_ON_STARTUP']:
            seed_defaults()

    _register_error_handlers(app)
    _register_routes(app)
    _register_commands(app)
    return app


def _setup_logging(app):
    level = app.config['LOG_LEVEL']
    app.logger.setLevel(level)
    for name in ('services', 'seed'):
        logger = logging.getLogger(name)
        logger.setLevel(level)
        if default_handler not in logger.handlers:
            logger.addHandler(default_handler)
        # already printed by default_handler, keep it off the root handlers
        logger.propagate = False


def _json_body():
    # missing or unparsable body counts as empty, any other non-object is an error
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BadRequest('Invalid JSON body')
    return data


def _register_error_handlers(app):
    @app.errorhandler(ShopError)
    def handle_shop_error(err):
        return jsonify(success=False, error=err.message), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify(success=False, error=err.description), err.code

    # database trouble only fails the current request
    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(err):
        db.session.rollback()
        app.logger.exception('Database error')
        return jsonify(success=False, error='Database error'), 500


def _register_routes(app):

    # registration and login
    @app.route('/api/auth/register', methods=['POST'])
    def register():
        data = _json_body()
        user = services.register_user(data.get('email'), data.get('password'))
        return jsonify(success=True, message='Registration successful!', user=user.to_dict())

    @app.route('/api/auth/login', methods=['POST'])
    def login():
        data = _json_body()
        user = services.login_user(data.get('email'), data.get('password'))
        return jsonify(success=True, message='Login successful!', user=user.to_dict())

    # catalog
    @app.route('/api/sweets')
    def list_sweets():
        sweets = services.list_sweets()
        app.logger.debug('Found %d sweets', len(sweets))
        return jsonify(sweets=[s.to_dict() for s in sweets])

    @app.route('/api/sweets/search')
    def search_sweets():
        sweets = services.search_sweets(request.args.get('name'), request.args.get('category'))
        return jsonify(sweets=[s.to_dict() for s in sweets])

    @app.route('/api/sweets/<int:id>')
    def get_sweet(id):
        return jsonify(services.get_sweet(id).to_dict())

    # admin inventory management
    @app.route('/api/sweets', methods=['POST'])
    def add_sweet():
        data = _json_body()
        sweet = services.create_sweet(
            name=data.get('name'),
            price=data.get('price'),
            category=data.get('category'),
            quantity=data.get('quantity'),
        )
        return jsonify(success=True, message='Sweet added successfully', sweet=sweet.to_dict())

    @app.route('/api/sweets/<int:id>', methods=['DELETE'])
    def delete_sweet(id):
        services.delete_sweet(id)
        return jsonify(success=True, message='Sweet deleted')

    @app.route('/api/sweets/<int:id>/restock', methods=['POST'])
    def restock_sweet(id):
        sweet = services.restock_sweet(id)
        step = app.config['RESTOCK_STEP']
        return jsonify(success=True, message=f'Restocked {step} items', sweet=sweet.to_dict())

    # purchasing
    @app.route('/api/sweets/<int:id>/purchase', methods=['POST'])
    def purchase_sweet(id):
        data = _json_body()
        details = services.purchase_sweet(id, data.get('user_id'), data.get('quantity', 1))
        return jsonify(success=True, message='Purchase successful!', purchaseDetails=details)

    @app.route('/api/purchases/user/<int:user_id>')
    def purchase_history(user_id):
        return jsonify(services.purchase_history(user_id))

    # reports
    @app.route('/api/categories')
    def categories():
        return jsonify(services.list_categories())

    @app.route('/api/stats')
    def stats():
        return jsonify(services.shop_stats())

    @app.route('/api/reset-database', methods=['POST'])
    def reset_database():
        services.reset_database(request.args.get('secret'))
        return jsonify(success=True, message='Database reset successfully')

    @app.route('/api/test')
    def health():
        return jsonify(
            success=True,
            message='Backend is working!',
            time=datetime.now(timezone.utc).isoformat(),
            database=db.engine.url.render_as_string(hide_password=True),
        )


def _register_commands(app):

    @app.cli.command('init-db')
    def init_db():
        """Create the tables and seed them if empty."""
        db.create_all()
        seed_defaults()
        click.echo('Database ready.')

    @app.cli.command('add-user')
    @click.argument('email')
    @click.argument('password')
    @click.option('--admin', is_flag=True, help='Give the account admin rights.')
    def add_user(email, password, admin):
        """Register a shop account from the shell."""
        try:
            user = services.register_user(email, password)
        except ShopError as err:
            raise click.ClickException(err.message)
        if admin:
            user.is_admin = True
            db.session.commit()
        click.echo(f'User added with ID: {user.id}')
        click.echo(f'Email: {user.email}')
        click.echo(f"Admin: {'Yes' if user.is_admin else 'No'}")

    @app.cli.command('show-db')
    def show_db():
        """Print every table and its rows."""
        for table in db.metadata.sorted_tables:
            rows = db.session.execute(db.select(table)).mappings().all()
            click.echo(f'{table.name} ({len(rows)} rows)')
            for row in rows:
                click.echo('  ' + ', '.join(f'{key}={value}' for key, value in row.items()))


if __name__ == '__main__':
    create_app().run(debug=True, host='0.0.0.0', port=5000)
