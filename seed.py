# default rows for a fresh (or freshly reset) shop

import logging

from flask import current_app

from models import db, User, Sweet

logger = logging.getLogger(__name__)

# (email, password, is_admin) - these two accounts survive a reset
DEFAULT_USERS = [
    ('admin@shop.com', 'admin123', True),
    ('user@shop.com', 'user123', False),
]
PROTECTED_EMAILS = tuple(email for email, _, _ in DEFAULT_USERS)

# (name, category, price, quantity)
DEFAULT_SWEETS = [
    ('Chocolate Bar', 'Chocolate', 4.99, 50),
    ('Gummy Bears', 'Candy', 3.99, 30),
    ('Lollipop', 'Candy', 1.99, 100),
    ('Cupcake', 'Bakery', 2.99, 20),
    ('Brownie', 'Bakery', 3.49, 25),
    ('Donut', 'Bakery', 2.49, 40),
    ('Ice Cream', 'Frozen', 5.99, 35),
    ('Milk Chocolate', 'Chocolate', 3.99, 60),
    ('Dark Chocolate', 'Chocolate', 4.49, 45),
    ('Jelly Beans', 'Candy', 2.99, 80),
    ('Caramel Candy', 'Candy', 3.49, 55),
    ('Pastry', 'Bakery', 4.99, 15),
    ('Cookies', 'Bakery', 3.99, 50),
    ('Toffee', 'Candy', 1.49, 120),
    ('White Chocolate', 'Chocolate', 4.29, 40),
    ('Chocolate Truffles', 'Chocolate', 6.99, 30),
    ('Sour Worms', 'Candy', 2.49, 75),
    ('Macarons', 'Bakery', 5.49, 25),
    ('Fudge', 'Chocolate', 4.99, 40),
    ('Peppermint Candy', 'Candy', 1.99, 150),
]


def seed_users():
    """Add whichever default accounts are missing. Does not commit."""
    hashed = current_app.config['HASH_PASSWORDS']
    existing = set(db.session.scalars(
        db.select(User.email).where(User.email.in_(PROTECTED_EMAILS))
    ))
    added = 0
    for email, password, is_admin in DEFAULT_USERS:
        if email in existing:
            continue
        user = User(email=email, is_admin=is_admin)
        user.set_password(password, hashed=hashed)
        db.session.add(user)
        added += 1
    if added:
        logger.info('Added %d default users', added)
    return added


def seed_sweets():
    """Fill the catalog with the default sweets if it is empty. Does not commit."""
    count = db.session.scalar(db.select(db.func.count()).select_from(Sweet))
    if count:
        logger.info('Sweets already exist (%d sweets)', count)
        return 0
    db.session.add_all([
        Sweet(name=name, category=category, price=price, quantity=quantity)
        for name, category, price, quantity in DEFAULT_SWEETS
    ])
    logger.info('%d default sweets added', len(DEFAULT_SWEETS))
    return len(DEFAULT_SWEETS)


def seed_defaults():
    seed_users()
    seed_sweets()
    db.session.commit()
