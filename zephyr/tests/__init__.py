# zephyr/tests/__init__.py
