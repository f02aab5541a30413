# -*- coding: utf-8 -*-
from flask_sqlalchemy import SQLAlchemy

# global SQLAlchemy() instance shared by models, services and jobs
db = SQLAlchemy()
