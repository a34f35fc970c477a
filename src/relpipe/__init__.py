"""relpipe

An in-memory relational pipeline built on Apache Arrow.

relpipe provides the tabular data manipulation idioms
common to dataframe libraries: selecting columns, filtering rows,
deriving new columns, grouping and aggregating, sorting,
removing duplicates and joining tables.
It was built around a dataset of flight records, where
those idioms are needed to answer questions like
"which carrier has the worst average delay from JFK?".

The project is constituted by multiple components, each isolated within its own
package and each self documented in literate programming style.

The primary components are:

* The Compute Engine, in charge of executing the operations on the data
  as a plan of nodes exchanging Arrow record batches.
* The Relation API, which provides an high level and immutable
  table object whose methods build and run plans for the compute engine.

For the user guide and code documentation of each component, refer to the
component itself.
"""

from . import compute, errors
from .config import Config, config
from .relation import Relation

__all__ = ("compute", "errors", "Config", "config", "Relation")
