from __future__ import annotations

import asyncio

import httpx

from conftest import KYOTO, FakeLookupClient, iso, sunny
from tripweather.cache import DictCache, forecast_cache, geocode_cache
from tripweather.resolvers import NETWORK_ERROR, ForecastResolver, GeocodeResolver
from tripweather.schemas import WeatherData
from tripweather.weather_clients import WeatherError


def test_geocode_is_memoized_case_insensitively(client: FakeLookupClient) -> None:
    resolver = GeocodeResolver(client)

    async def scenario():
        first = await resolver.resolve("Kyoto")
        second = await resolver.resolve("KYOTO")
        return first, second

    first, second = asyncio.run(scenario())

    assert first == KYOTO
    assert second == first
    assert client.geocode_calls == ["Kyoto"]
    assert geocode_cache.get("kyoto") == KYOTO


def test_geocode_caches_not_found(client: FakeLookupClient) -> None:
    resolver = GeocodeResolver(client)

    async def scenario():
        return await resolver.resolve("Nonexistent Place"), await resolver.resolve("Nonexistent Place")

    first, second = asyncio.run(scenario())

    assert not first.found
    assert second is first
    assert client.geocode_calls == ["Nonexistent Place"]


def test_geocode_network_failure_is_not_raised_or_cached(client: FakeLookupClient) -> None:
    client.geocode_error = httpx.ConnectError("boom")
    resolver = GeocodeResolver(client)

    result = asyncio.run(resolver.resolve("Kyoto"))

    assert not result.found
    assert result.reason == NETWORK_ERROR
    assert geocode_cache.get("kyoto") is None

    client.geocode_error = None
    assert asyncio.run(resolver.resolve("Kyoto")) == KYOTO
    assert len(client.geocode_calls) == 2


def test_geocode_parse_failure_is_a_network_error(client: FakeLookupClient) -> None:
    client.geocode_error = ValueError("Expecting value")
    result = asyncio.run(GeocodeResolver(client).resolve("Kyoto"))
    assert result.reason == NETWORK_ERROR


def test_forecast_cache_hit_for_nearby_coordinates(client: FakeLookupClient) -> None:
    resolver = ForecastResolver(client)
    day = iso(2)

    async def scenario():
        first = await resolver.resolve(35.68123, 139.76709, day)
        second = await resolver.resolve(35.681249, 139.767088, day)
        return first, second

    first, second = asyncio.run(scenario())

    assert first.available
    assert second is first
    assert len(client.weather_calls) == 1
    assert forecast_cache.get(f"35.6812,139.7671,{day}") is first


def test_forecast_unavailable_is_not_cached(client: FakeLookupClient) -> None:
    day = iso(15)
    client.forecasts[day] = WeatherData(available=False, reason="No weather data for this date")
    resolver = ForecastResolver(client)

    async def scenario():
        return await resolver.resolve(35.0, 135.0, day), await resolver.resolve(35.0, 135.0, day)

    first, second = asyncio.run(scenario())

    assert not first.available
    assert not second.available
    assert len(client.weather_calls) == 2
    assert len(forecast_cache) == 0


def test_forecast_failure_returns_none(client: FakeLookupClient) -> None:
    day = iso(1)
    client.forecasts[day] = WeatherError("/weather failed (502): bad gateway")
    assert asyncio.run(ForecastResolver(client).resolve(35.0, 135.0, day)) is None
    assert len(forecast_cache) == 0


def test_injected_cache_is_used(client: FakeLookupClient) -> None:
    cache = DictCache()
    resolver = GeocodeResolver(client, cache=cache)
    asyncio.run(resolver.resolve("Kyoto"))
    assert cache.get("kyoto") == KYOTO
    assert geocode_cache.get("kyoto") is None


def test_single_flight_collapses_concurrent_misses(client: FakeLookupClient) -> None:
    resolver = GeocodeResolver(client, single_flight=True)

    async def scenario():
        gate = client.gate("Kyoto")
        first = asyncio.ensure_future(resolver.resolve("Kyoto"))
        second = asyncio.ensure_future(resolver.resolve("kyoto"))
        await asyncio.sleep(0)
        gate.set()
        return await asyncio.gather(first, second)

    first, second = asyncio.run(scenario())

    assert first == second == KYOTO
    assert client.geocode_calls == ["Kyoto"]


def test_without_single_flight_concurrent_misses_each_call_out(client: FakeLookupClient) -> None:
    resolver = ForecastResolver(client, single_flight=False)
    day = iso(3)

    async def scenario():
        gate = client.gate(day)
        calls = [asyncio.ensure_future(resolver.resolve(35.0, 135.0, day)) for _ in range(2)]
        await asyncio.sleep(0)
        gate.set()
        return await asyncio.gather(*calls)

    first, second = asyncio.run(scenario())

    assert first == second == sunny(day)
    assert len(client.weather_calls) == 2


def test_single_flight_survives_a_cancelled_waiter(client: FakeLookupClient) -> None:
    resolver = GeocodeResolver(client, single_flight=True)

    async def scenario():
        gate = client.gate("Kyoto")
        first = asyncio.ensure_future(resolver.resolve("Kyoto"))
        second = asyncio.ensure_future(resolver.resolve("Kyoto"))
        await asyncio.sleep(0)
        first.cancel()
        gate.set()
        return await second

    assert asyncio.run(scenario()) == KYOTO
    assert client.geocode_calls == ["Kyoto"]
    assert geocode_cache.get("kyoto") == KYOTO
