# this file defines the database structure for the sweet shop
# it uses 3 tables: users, sweets and the purchase ledger

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timezone

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


# table 1: users - shop accounts, the admin flag unlocks inventory management
class User(db.Model):
    __tablename__ = 'users'
    __table_args__ = {'sqlite_autoincrement': True}  # ids are never reused

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)  # verbatim unless HASH_PASSWORDS is on
    is_admin = db.Column(db.Boolean, nullable=False, default=False)

    def set_password(self, password, hashed=False):
        self.password = generate_password_hash(password) if hashed else password

    def check_password(self, password, hashed=False):
        if hashed:
            return check_password_hash(self.password, password)
        return self.password == password

    def to_dict(self):
        return {'id': self.id, 'email': self.email, 'isAdmin': bool(self.is_admin)}

    def __repr__(self):
        return f'<User {self.email}>'


# table 2: sweets - the catalog
class Sweet(db.Model):
    __tablename__ = 'sweets'
    __table_args__ = (
        db.CheckConstraint('quantity >= 0', name='ck_sweets_quantity_non_negative'),
        {'sqlite_autoincrement': True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), unique=True, nullable=False)
    category = db.Column(db.String(100))
    price = db.Column(db.Float, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)  # units on hand

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'price': self.price,
            'quantity': self.quantity,
        }

    def __repr__(self):
        return f'<Sweet {self.name}>'


# table 3: purchases - append-only ledger
# sweet_name and price are copied at sale time so later catalog edits never
# rewrite history; user_id is a plain column, dangling ids are tolerated
class Purchase(db.Model):
    __tablename__ = 'purchases'
    __table_args__ = {'sqlite_autoincrement': True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, index=True)
    sweet_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, nullable=False)  # unit price
    date = db.Column(db.String(64), nullable=False)  # human readable, e.g. "Mon, Oct 19, 2026, 02:30 PM"
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'sweet_name': self.sweet_name,
            'quantity': self.quantity,
            'price': self.price,
            'date': self.date,
        }
