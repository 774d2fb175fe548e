# db/database.py
from flask_pymongo import PyMongo
from flask import current_app, g

mongo = PyMongo()

def init_db(app):
    mongo.init_app(app)

def get_db():
    if current_app:
        if 'db' not in g:
            g.db = mongo.db
        return g.db
    raise RuntimeError("Application context not found.")
