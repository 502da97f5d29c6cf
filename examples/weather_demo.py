"""Minimal demonstration of the tool dispatcher."""

import asyncio

from olly_agent import execute_tool

if __name__ == "__main__":
    result = asyncio.run(execute_tool("getWeather", {"location": "Boston, MA", "days": 2}))
    print("getWeather:", result)
