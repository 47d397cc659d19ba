pytest_plugins = ["kiln.testing"]
