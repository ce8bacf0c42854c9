"""Setup script for mqtt_chat_relay package."""

from setuptools import find_packages, setup

setup(
    name="mqtt-chat-relay",
    version="0.1.0",
    description="MQTT to OpenAI-compatible chat API relay with a bounded rolling conversation",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.11",
    install_requires=[
        "paho-mqtt>=2.0",
        "aiohttp>=3.9",
        "pydantic>=2.0",
        "click>=8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.23",
            "hypothesis>=6.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mqtt-chat-relay=mqtt_chat_relay.main:main",
        ],
    },
)
