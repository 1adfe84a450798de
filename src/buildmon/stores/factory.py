from typing import Annotated, Union

import pydantic as pdt

import buildmon.stores.jsonfile as jsonfile
import buildmon.stores.memory as memory

StoreKind = Annotated[
    Union[jsonfile.JsonStore, memory.MemoryStore],
    pdt.Field(discriminator="kind"),
]
