from setuptools import setup, find_packages

setup(
    name="helpdesk",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main", "watch_board"],
    python_requires=">=3.10",
    install_requires=[
        "flask",
        "flask-cors",
        "python-dotenv",
        "supabase>=2.0",
        "postgrest",
        "PyJWT",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
)
