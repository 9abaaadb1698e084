"""TakrawIQ data models — Pydantic schemas for rally scoring."""

from takraw.models.match import *
from takraw.models.roster import *
from takraw.models.requests import *
