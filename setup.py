from setuptools import setup, find_packages

setup(
    name="face_capture_gate",
    version="0.1.0",
    description="Face framing and lighting gate for camera photo capture",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "opencv-python>=4.8,<5",
    ],
    extras_require={
        "dev": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "face-capture-gate=main:main",
        ]
    },
)
