from flask import Blueprint

from api import __version__

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """Health check"""
    return {"status": "ok", "version": __version__}, 200
