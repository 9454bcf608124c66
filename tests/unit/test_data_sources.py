# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Unit tests for the Pureport list data sources."""

import zlib

import pytest

from pureport_terraform.pureport.data_source import filter_by_name_regex, hash_ids
from pureport_terraform.pureport.model.cloud_regions import CloudRegions
from pureport_terraform.pureport.model.cloud_services import CloudServices
from pureport_terraform.pureport.model.locations import Locations
from pureport_terraform.utils.resource_utils import CustomClientHTTPError, ResourceError


class TestHelpers:
    """Tests for the shared data source helpers."""

    def test_hash_ids(self):
        """Test that the id is a stable checksum of the returned ids."""
        assert hash_ids(["a", "b"]) == str(zlib.crc32(b"a,b"))
        assert hash_ids(["a", "b"]) != hash_ids(["b", "a"])

    def test_filter_by_name_regex(self):
        """Test that the regex searches within names."""
        items = [{"name": "Seattle"}, {"name": "San Jose"}, {"name": None}]
        assert filter_by_name_regex(items, "^Se") == [{"name": "Seattle"}]
        assert filter_by_name_regex(items, "") == items

    def test_invalid_regex(self, config):
        """Test that an invalid name_regex fails validation."""
        _, _, errors = Locations(config).validate({"name_regex": "("})
        assert len(errors) == 1


class TestLocations:
    """Tests for pureport_locations."""

    @pytest.mark.asyncio
    async def test_read(self, config):
        """Test listing and filtering locations."""
        config.pureport_client.get.return_value = [
            {"id": "us-sea", "href": "/locations/us-sea", "name": "Seattle"},
            {"id": "us-sjc", "href": "/locations/us-sjc", "name": "San Jose"},
        ]
        locations = Locations(config)
        d = locations.resource_data(config={"name_regex": "^Sea"})

        await locations.read_resource(d)

        config.pureport_client.get.assert_awaited_once_with("/locations")
        assert d.get("locations") == [{"id": "us-sea", "href": "/locations/us-sea", "name": "Seattle"}]
        assert d.id == hash_ids(["us-sea"])

    @pytest.mark.asyncio
    async def test_read_error(self, config):
        """Test that listing errors surface as resource errors."""
        config.pureport_client.get.side_effect = CustomClientHTTPError(500, "down")
        locations = Locations(config)

        with pytest.raises(ResourceError):
            await locations.read_resource(locations.resource_data(config={}))


class TestCloudRegions:
    """Tests for pureport_cloud_regions."""

    @pytest.mark.asyncio
    async def test_provider_filter(self, config):
        """Test filtering regions by cloud provider, ignoring case."""
        config.pureport_client.get.return_value = [
            {"id": "aws-us-west-2", "displayName": "US West (Oregon)", "provider": "AWS", "identifier": "us-west-2"},
            {"id": "azure-westus", "name": "West US", "provider": "AZURE", "identifier": "westus"},
        ]
        regions = CloudRegions(config)
        d = regions.resource_data(config={"provider": "aws"})

        await regions.read_resource(d)

        assert d.get("regions") == [
            {"id": "aws-us-west-2", "name": "US West (Oregon)", "provider": "AWS", "identifier": "us-west-2"}
        ]

    def test_invalid_provider(self, config):
        """Test that unknown providers fail validation."""
        _, _, errors = CloudRegions(config).validate({"provider": "oracle"})
        assert len(errors) == 1


class TestCloudServices:
    """Tests for pureport_cloud_services."""

    @pytest.mark.asyncio
    async def test_flatten(self, config):
        """Test the flattened service attributes."""
        config.pureport_client.get.return_value = [
            {
                "id": "aws-s3-us-west-2",
                "name": "S3 us-west-2",
                "provider": "AWS",
                "service": "S3",
                "href": "/cloudServices/aws-s3-us-west-2",
                "ipv4PrefixCount": 12,
                "ipv6PrefixCount": 3,
            }
        ]
        services = CloudServices(config)
        d = services.resource_data(config={})

        await services.read_resource(d)

        assert d.get("services") == [
            {
                "id": "aws-s3-us-west-2",
                "name": "S3 us-west-2",
                "provider": "AWS",
                "service": "S3",
                "href": "/cloudServices/aws-s3-us-west-2",
                "ipv4_prefix_count": 12,
                "ipv6_prefix_count": 3,
            }
        ]
        assert d.state() is not None
