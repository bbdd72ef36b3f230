# gongsu_api/wsgi.py
from gongsu_api import create_app

app = create_app()
