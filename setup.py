import setuptools

setuptools.setup(
    name="dicecalc",
    version="0.0.0",
    classifiers=["Programming Language :: Python :: 3"],
    packages=["dicecalc"],
    package_data={"dicecalc": ["roll.lark", "settings.default.yaml"]},
    entry_points={"console_scripts": ["dicecalc=dicecalc.__main__:main"]},
    install_requires=["lark", "discord.py", "pyyaml", "plotly", "kaleido", "pandas"],
    extras_require={"test": ["pytest"]},
)
