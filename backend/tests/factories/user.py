"""Factory Boy definition for :class:`cloudstorage.models.user.User`."""

from __future__ import annotations

import factory
from werkzeug.security import generate_password_hash

from cloudstorage.models.user import User
from tests.factories import BaseFactory

DEFAULT_PASSWORD = "Passw0rd!"


class UserFactory(BaseFactory):
    """
    Build persisted local accounts.

    ``password`` sets the plaintext to hash; pass ``password_hash=None``
    together with a ``federated_id`` for a federated-only account.
    """

    class Meta:
        model = User
        exclude = ("password",)

    id = None  # let autoincrement handle it
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    name = factory.Sequence(lambda n: f"User {n}")
    role = "user"
    is_active = True
    is_email_verified = True
    preferences = factory.LazyFunction(dict)

    password = DEFAULT_PASSWORD
    password_hash = factory.LazyAttribute(
        # Low iteration count; verification reads the method from the hash.
        lambda o: generate_password_hash(o.password, method="pbkdf2:sha256:1000")
    )


class AdminFactory(UserFactory):
    role = "admin"


class FederatedUserFactory(UserFactory):
    password_hash = None
    federated_id = factory.Sequence(lambda n: f"google-sub-{n}")
