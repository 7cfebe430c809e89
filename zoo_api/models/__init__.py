"""
Zoo Registry API: ORM Models
=============================

Importing this package registers every table on `Base.metadata`, which is
what `Database.create_all()` and the test fixtures rely on.
"""

from zoo_api.models.animal import Animal
from zoo_api.models.user import User
from zoo_api.models.zoo import Zoo

__all__ = ["Animal", "User", "Zoo"]
