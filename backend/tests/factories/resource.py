"""Factory Boy definitions for resources and share grants."""

from __future__ import annotations

import factory

from cloudstorage.models.resource import Resource, ResourceShare
from tests.factories import BaseFactory
from tests.factories.user import UserFactory


class ResourceFactory(BaseFactory):
    class Meta:
        model = Resource

    id = None
    owner = factory.SubFactory(UserFactory)
    name = factory.Sequence(lambda n: f"report-{n}.pdf")
    storage_key = factory.Sequence(lambda n: f"{n:032x}_report.pdf")
    size = 1024
    content_type = "application/pdf"
    description = None
    tags = factory.LazyFunction(list)
    is_public = False


class ResourceShareFactory(BaseFactory):
    class Meta:
        model = ResourceShare

    id = None
    resource = factory.SubFactory(ResourceFactory)
    user = factory.SubFactory(UserFactory)
    permission = "read"
