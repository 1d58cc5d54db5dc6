from . import lib  # so: from modules.vacancy_watch import lib
from .main import run  # so: from modules.vacancy_watch import run

__all__ = ["lib", "run"]
