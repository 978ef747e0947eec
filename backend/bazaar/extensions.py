# Overview: Flask extension instances for the offer, auction and like stores.

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
