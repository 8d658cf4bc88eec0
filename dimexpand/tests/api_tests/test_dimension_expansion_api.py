"""Test cases for dimension expansion API endpoints"""

import os
import asyncio
import django
from unittest.mock import AsyncMock, MagicMock, Mock, patch
import pytest
from ninja.errors import HttpError

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dimexpand.settings")
django.setup()

from django.contrib.auth.models import User
from rest_framework.authtoken.models import Token
from sqlalchemy.exc import OperationalError

from dimexpand.auth import CustomAuthMiddleware, build_access_scope
from dimexpand.api.dimension_expansion_api import (
    expand_chart,
    get_chart_dimension_values,
    get_chart_dimensions,
)
from dimexpand.core.dimensions.exceptions import (
    DimensionExpansionValidationError,
    DimensionNotFoundError,
)
from dimexpand.models.access import AnalyticsAccess
from dimexpand.schemas.access_schema import AccessScope
from dimexpand.schemas.dimension_schema import (
    AvailableDimensionsResponse,
    ExpandChartPayload,
    ExpansionDimension,
)

MODULE = "dimexpand.api.dimension_expansion_api"

CHART_ID = "6f1c2f1e-8a55-4b0e-9d8c-2a1e0b8f9c01"

# ================================================================================
# Fixtures
# ================================================================================


def mock_request(permission_scope="all", accessible_practices=None):
    """A request that already went through the auth middleware"""
    request = Mock()
    request.access_scope = AccessScope(
        user_id="7",
        permission_scope=permission_scope,
        accessible_practices=accessible_practices or [],
    )
    return request


@pytest.fixture
def location():
    return ExpansionDimension(
        column_name="location", display_name="Location", data_type="string", data_source_id=3
    )


@pytest.fixture
def discovery(location):
    discovery = MagicMock()
    discovery.get_chart_expansion_dimensions = AsyncMock(
        return_value=AvailableDimensionsResponse(
            dimensions=[location], chart_definition_id=CHART_ID, data_source_id=3
        )
    )
    discovery.get_dimension_values = AsyncMock(return_value="values")
    with patch(f"{MODULE}.discovery_service", discovery):
        yield discovery


@pytest.fixture
def renderer():
    renderer = MagicMock()
    renderer.render_by_dimension = AsyncMock(return_value="single")
    renderer.render_by_multiple_dimensions = AsyncMock(return_value="multi")
    with patch(f"{MODULE}.dimension_renderer", renderer):
        yield renderer


@pytest.fixture
def payload():
    return ExpandChartPayload(
        final_chart_config={"data_source_id": 3, "chart_type": "bar"},
        runtime_filters={"measure": "Charges"},
        dimension_column="location",
    )


# ================================================================================
# get_chart_dimensions
# ================================================================================


def test_get_chart_dimensions(discovery, location):
    response = asyncio.run(get_chart_dimensions(mock_request(), CHART_ID))

    assert response.dimensions == [location]
    discovery.get_chart_expansion_dimensions.assert_awaited_once()


def test_get_chart_dimensions_without_access(discovery):
    with pytest.raises(HttpError) as excinfo:
        asyncio.run(get_chart_dimensions(mock_request(permission_scope="none"), CHART_ID))

    assert excinfo.value.status_code == 403
    discovery.get_chart_expansion_dimensions.assert_not_awaited()


# ================================================================================
# get_chart_dimension_values
# ================================================================================


def test_get_chart_dimension_values(discovery):
    request = mock_request()
    response = asyncio.run(
        get_chart_dimension_values(
            request, CHART_ID, "location", limit=5, measure="Charges", start_date="2024-01-01"
        )
    )

    assert response == "values"
    discovery.get_dimension_values.assert_awaited_once_with(
        3,
        "location",
        [
            {"field": "date", "operator": "gte", "value": "2024-01-01"},
            {"field": "measure", "operator": "eq", "value": "Charges"},
        ],
        request.access_scope,
        5,
    )


def test_get_chart_dimension_values_unknown_chart(discovery):
    discovery.get_chart_expansion_dimensions.return_value = AvailableDimensionsResponse(
        dimensions=[], chart_definition_id=CHART_ID, data_source_id=0
    )

    with pytest.raises(HttpError) as excinfo:
        asyncio.run(get_chart_dimension_values(mock_request(), CHART_ID, "location"))

    assert excinfo.value.status_code == 404
    discovery.get_dimension_values.assert_not_awaited()


def test_get_chart_dimension_values_unknown_dimension(discovery):
    discovery.get_dimension_values.side_effect = DimensionNotFoundError("ssn", 3)

    with pytest.raises(HttpError) as excinfo:
        asyncio.run(get_chart_dimension_values(mock_request(), CHART_ID, "ssn"))

    assert excinfo.value.status_code == 404


def test_get_chart_dimension_values_query_failure(discovery):
    discovery.get_dimension_values.side_effect = OperationalError("SELECT", {}, Exception("down"))

    with pytest.raises(HttpError) as excinfo:
        asyncio.run(get_chart_dimension_values(mock_request(), CHART_ID, "location"))

    assert excinfo.value.status_code == 500
    assert str(excinfo.value) == "Query execution failed"


# ================================================================================
# expand_chart
# ================================================================================


def test_expand_chart_single_dimension(renderer, payload):
    request = mock_request()
    response = asyncio.run(expand_chart(request, CHART_ID, payload))

    assert response == "single"
    expansion_request, access_scope = renderer.render_by_dimension.await_args[0]
    assert expansion_request.dimension_column == "location"
    assert expansion_request.final_chart_config == {"data_source_id": 3, "chart_type": "bar"}
    assert access_scope == request.access_scope
    renderer.render_by_multiple_dimensions.assert_not_awaited()


def test_expand_chart_multiple_dimensions(renderer, payload):
    payload.dimension_columns = ["location", "payer"]
    payload.limit = 4
    payload.offset = 8

    response = asyncio.run(expand_chart(mock_request(), CHART_ID, payload))

    assert response == "multi"
    expansion_request, _ = renderer.render_by_multiple_dimensions.await_args[0]
    assert expansion_request.dimension_columns == ["location", "payer"]
    assert expansion_request.limit == 4
    assert expansion_request.offset == 8
    renderer.render_by_dimension.assert_not_awaited()


def test_expand_chart_needs_a_dimension(renderer, payload):
    payload.dimension_column = None

    with pytest.raises(HttpError) as excinfo:
        asyncio.run(expand_chart(mock_request(), CHART_ID, payload))

    assert excinfo.value.status_code == 400


def test_expand_chart_uses_saved_config(renderer, payload):
    payload.final_chart_config = None
    saved = {"data_source_id": 9, "chart_type": "line"}

    with patch(f"{MODULE}.get_saved_chart_config", return_value=saved):
        asyncio.run(expand_chart(mock_request(), CHART_ID, payload))

    expansion_request, _ = renderer.render_by_dimension.await_args[0]
    assert expansion_request.final_chart_config == saved


def test_expand_chart_unknown_saved_chart(renderer, payload):
    payload.final_chart_config = None

    with patch(f"{MODULE}.get_saved_chart_config", return_value=None):
        with pytest.raises(HttpError) as excinfo:
            asyncio.run(expand_chart(mock_request(), CHART_ID, payload))

    assert excinfo.value.status_code == 404


def test_expand_chart_validation_error(renderer, payload):
    renderer.render_by_dimension.side_effect = DimensionExpansionValidationError(
        "Invalid data_source_id in provided final_chart_config"
    )

    with pytest.raises(HttpError) as excinfo:
        asyncio.run(expand_chart(mock_request(), CHART_ID, payload))

    assert excinfo.value.status_code == 400
    assert str(excinfo.value) == "Invalid data_source_id in provided final_chart_config"


def test_expand_chart_unexpected_error(renderer, payload):
    renderer.render_by_dimension.side_effect = KeyError("boom")

    with pytest.raises(HttpError) as excinfo:
        asyncio.run(expand_chart(mock_request(), CHART_ID, payload))

    assert excinfo.value.status_code == 500


# ================================================================================
# auth
# ================================================================================


@pytest.fixture
def authuser():
    """A django User object"""
    user = User.objects.create(
        username="analyst", email="analyst@test.com", password="testpassword"
    )
    yield user
    user.delete()


@pytest.mark.django_db
def test_build_access_scope_without_profile(authuser):
    access_scope = build_access_scope(authuser)

    assert access_scope.user_id == str(authuser.id)
    assert access_scope.permission_scope == "none"


@pytest.mark.django_db
def test_build_access_scope(authuser):
    AnalyticsAccess.objects.create(
        user=authuser,
        permission_scope="organization",
        accessible_practices=[114, 115],
        accessible_providers=[7],
    )

    access_scope = build_access_scope(authuser)

    assert access_scope.permission_scope == "organization"
    assert access_scope.accessible_practices == [114, 115]
    assert access_scope.accessible_providers == [7]
    assert access_scope.email == "analyst@test.com"


@pytest.mark.django_db
def test_auth_middleware(authuser):
    token = Token.objects.create(user=authuser)
    AnalyticsAccess.objects.create(user=authuser, permission_scope="all")
    request = Mock()

    assert CustomAuthMiddleware().authenticate(request, token.key) is request
    assert request.user == authuser
    assert request.access_scope.sees_everything


@pytest.mark.django_db
def test_auth_middleware_unknown_token():
    with pytest.raises(HttpError) as excinfo:
        CustomAuthMiddleware().authenticate(Mock(), "not-a-token")

    assert excinfo.value.status_code == 400
