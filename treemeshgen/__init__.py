from treemeshgen.config import (
    CanopyVolume,
    GrowthConfig,
    LeafMode,
    StructureMode,
    growth_config_from_dict,
    load_growth_config,
)
from treemeshgen.generate import TreeResult, generate_tree
from treemeshgen.presets.trees import get_preset
