# FilePath: "/bots/__init__.py"
# Description: Built-in Colloquium bot plugins.
# Author: "Colloquium Contributors"
