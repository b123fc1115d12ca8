# services.py - shop operations behind the http routes
# every function works on the flask-sqlalchemy session and raises errors.ShopError
# subclasses for anything the caller did wrong

import logging
import math
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import BadRequest, Conflict, InsufficientStock, NotFound, Unauthorized
from models import db, User, Sweet, Purchase
from seed import PROTECTED_EMAILS, seed_users, seed_sweets

logger = logging.getLogger(__name__)

# largest value a sqlite INTEGER column holds
MAX_INT = 2**63 - 1


def _as_int(value, field, minimum=0, maximum=MAX_INT):
    if isinstance(value, bool):
        raise BadRequest(f'{field} must be an integer')
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise BadRequest(f'{field} must be an integer')
    if isinstance(value, float) and number != value:
        raise BadRequest(f'{field} must be an integer')
    if number < minimum:
        raise BadRequest(f'{field} must be at least {minimum}')
    if number > maximum:
        raise BadRequest(f'{field} must be at most {maximum}')
    return number


def _check_text(*fields):
    # (name, value) pairs; None is left to the caller's "required" checks
    for field, value in fields:
        if value is not None and not isinstance(value, str):
            raise BadRequest(f'{field} must be a string')


def _as_price(value):
    if isinstance(value, bool):
        raise BadRequest('price must be a number')
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise BadRequest('price must be a number')
    if not math.isfinite(price) or price < 0:
        raise BadRequest('price must be a non-negative number')
    return price


def format_purchase_date(moment):
    # e.g. "Mon, Oct 19, 2026, 02:30 PM"
    return f"{moment:%a, %b} {moment.day}, {moment:%Y, %I:%M %p}"


# accounts

def register_user(email, password):
    _check_text(('email', email), ('password', password))
    if not email or not password:
        raise BadRequest('Email and password required')
    if db.session.scalar(db.select(User.id).where(User.email == email)) is not None:
        raise Conflict('User already exists')

    user = User(email=email, is_admin=False)
    user.set_password(password, hashed=current_app.config['HASH_PASSWORDS'])
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # lost a race with a concurrent registration of the same email
        db.session.rollback()
        raise Conflict('User already exists')
    logger.info('User registered with id %s', user.id)
    return user


def login_user(email, password):
    _check_text(('email', email), ('password', password))
    if not email or not password:
        raise BadRequest('Email and password required')
    user = db.session.scalar(db.select(User).where(User.email == email))
    if user is None or not user.check_password(password, hashed=current_app.config['HASH_PASSWORDS']):
        logger.warning('Failed login for %s', email)
        raise Unauthorized('Invalid email or password')
    logger.info('Login successful for %s', user.email)
    return user


# catalog

def list_sweets():
    return db.session.scalars(db.select(Sweet).order_by(Sweet.id.desc())).all()


def search_sweets(name=None, category=None):
    query = db.select(Sweet)
    if name:
        query = query.where(Sweet.name.icontains(name, autoescape=True))
    if category:
        query = query.where(Sweet.category.icontains(category, autoescape=True))
    return db.session.scalars(query.order_by(Sweet.id.desc())).all()


def get_sweet(sweet_id):
    sweet = db.session.get(Sweet, sweet_id)
    if sweet is None:
        raise NotFound('Sweet not found')
    return sweet


def create_sweet(name, price, category=None, quantity=None):
    _check_text(('name', name), ('category', category))
    if not name or price is None or price == '':
        raise BadRequest('Name and price required')
    sweet = Sweet(
        name=name,
        category=category or 'General',
        price=_as_price(price),
        quantity=0 if quantity in (None, '') else _as_int(quantity, 'quantity'),
    )
    db.session.add(sweet)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict('Failed to add sweet. Sweet name might already exist.')
    logger.info('Sweet added with id %s', sweet.id)
    return sweet


def delete_sweet(sweet_id):
    result = db.session.execute(db.delete(Sweet).where(Sweet.id == sweet_id))
    if result.rowcount == 0:
        db.session.rollback()
        raise NotFound('Sweet not found')
    db.session.commit()
    logger.info('Sweet %s deleted', sweet_id)


def restock_sweet(sweet_id, step=None):
    step = current_app.config['RESTOCK_STEP'] if step is None else step
    result = db.session.execute(
        db.update(Sweet)
        .where(Sweet.id == sweet_id)
        .values(quantity=Sweet.quantity + step)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.rollback()
        raise NotFound('Sweet not found')
    db.session.commit()
    logger.info('Restocked %d items for sweet %s', step, sweet_id)
    return db.session.get(Sweet, sweet_id)


def list_categories():
    query = (
        db.select(Sweet.category)
        .where(Sweet.category.is_not(None))
        .distinct()
        .order_by(Sweet.category)
    )
    return db.session.scalars(query).all()


# inventory / purchase

def purchase_sweet(sweet_id, user_id, quantity=1):
    """Sell ``quantity`` units of a sweet to ``user_id`` and return the receipt.

    The decrement is a single conditional UPDATE (``quantity >= requested``) and
    the ledger row is inserted in the same transaction, so either both writes
    land or neither does. Concurrent buyers can therefore never drive the stock
    below zero: the loser of a race sees zero affected rows and gets
    InsufficientStock.
    """
    if user_id is None or user_id == '':
        raise BadRequest('User ID required. Please login first.')
    user_id = _as_int(user_id, 'user_id', minimum=1)
    quantity = _as_int(quantity, 'quantity', minimum=1)

    sweet = get_sweet(sweet_id)
    if quantity > sweet.quantity:
        logger.warning('Purchase of %d x %s rejected, %d in stock', quantity, sweet.name, sweet.quantity)
        raise InsufficientStock(sweet.quantity)

    sweet_name, unit_price = sweet.name, sweet.price
    date = format_purchase_date(datetime.now())

    try:
        result = db.session.execute(
            db.update(Sweet)
            .where(Sweet.id == sweet_id, Sweet.quantity >= quantity)
            .values(quantity=Sweet.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # someone else bought the stock between our read and the update
            db.session.rollback()
            available = db.session.scalar(db.select(Sweet.quantity).where(Sweet.id == sweet_id))
            if available is None:
                raise NotFound('Sweet not found')
            raise InsufficientStock(available)

        purchase = Purchase(
            user_id=user_id,
            sweet_name=sweet_name,
            quantity=quantity,
            price=unit_price,
            date=date,
        )
        db.session.add(purchase)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    logger.info('Purchase %s: user %s bought %d x %s', purchase.id, user_id, quantity, sweet_name)
    return {
        'purchaseId': purchase.id,
        'sweetName': sweet_name,
        'quantity': quantity,
        'unitPrice': unit_price,
        'totalPrice': round(unit_price * quantity, 2),
        'date': date,
    }


# reporting

def purchase_history(user_id, limit=None):
    limit = current_app.config['HISTORY_LIMIT'] if limit is None else limit
    purchases = db.session.scalars(
        db.select(Purchase)
        .where(Purchase.user_id == user_id)
        .order_by(Purchase.created_at.desc(), Purchase.id.desc())
        .limit(limit)
    ).all()

    total_items = sum(p.quantity for p in purchases)
    total_amount = sum(p.price * p.quantity for p in purchases)
    return {
        'purchases': [p.to_dict() for p in purchases],
        'summary': {
            'totalItems': total_items,
            'totalAmount': f'{total_amount:.2f}',
            'purchaseCount': len(purchases),
        },
    }


def _count(model):
    return db.session.scalar(db.select(db.func.count()).select_from(model))


def shop_stats():
    total_value = db.session.scalar(
        db.select(db.func.coalesce(db.func.sum(Sweet.price * Sweet.quantity), 0))
    )
    return {
        'totalSweets': _count(Sweet),
        'totalUsers': _count(User),
        'totalPurchases': _count(Purchase),
        'totalValue': round(total_value, 2),
    }


# admin

def reset_database(secret):
    """Wipe purchases, sweets and non-default users, then re-seed.

    Guarded only by a shared secret. This is a demo affordance, not something
    to expose on a real deployment.
    """
    if not secret or secret != current_app.config['RESET_SECRET']:
        logger.warning('Database reset refused: bad secret')
        raise Unauthorized('Unauthorized', status_code=403)

    try:
        db.session.execute(db.delete(Purchase))
        db.session.execute(db.delete(Sweet))
        db.session.execute(db.delete(User).where(User.email.not_in(PROTECTED_EMAILS)))
        seed_users()
        seed_sweets()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    logger.info('Database reset')
