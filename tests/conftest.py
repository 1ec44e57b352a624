"""Pytest configuration and shared fixtures.

Item parameters are the published examples of Kolen and Brennan (2014),
the STUIRT and POLYEQUATE manuals, and the R packages plink and sirt.
"""

import numpy as np
import pytest

from irtequate.models import (
    GeneralizedPartialCredit,
    GradedResponseModel,
    PartialCreditModel,
    ThreeParameterLogistic,
)
from irtequate.quadrature import QuadratureRule


def make_3pl_form(params, D=1.7, prefix="item"):
    """Build an ordered 3PL item set from (a, b, c) rows."""
    return {
        f"{prefix}{i + 1}": ThreeParameterLogistic(a, b, c, D=D)
        for i, (a, b, c) in enumerate(params)
    }


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(42)


@pytest.fixture
def rasch_forms():
    """Eight Rasch items on two forms, D = 1 (sirt equating.rasch example)."""
    b_x = [
        -3.188047976, 1.031760328, 0.819040914, -2.706947360,
        -0.094527077, 0.689697135, -0.551837153, -0.359559276,
    ]
    b_y = [
        -3.074599226, 1.012824350, 0.868538408, -2.404483603,
        0.037402866, 0.700747420, -0.602555046, -0.350426446,
    ]
    form_x = {
        f"Item{i + 1}": ThreeParameterLogistic(difficulty=b, D=1.0, n_parameters=1)
        for i, b in enumerate(b_x)
    }
    form_y = {
        f"Item{i + 1}": ThreeParameterLogistic(difficulty=b, D=1.0, n_parameters=1)
        for i, b in enumerate(b_y)
    }
    quad = QuadratureRule.uniform(161, -4.0, 4.0)
    return form_x, form_y, quad, quad


@pytest.fixture
def kolen_common_items():
    """Twelve 3PL common items, Kolen and Brennan (2014) Table 6.5."""
    form_x = make_3pl_form(
        [
            (0.4551, -0.7101, 0.2087),
            (0.5839, -0.8567, 0.2038),
            (0.7544, 0.0212, 0.1600),
            (0.6633, 0.0506, 0.1240),
            (1.0690, 0.9610, 0.2986),
            (0.9672, 0.1950, 0.0535),
            (0.3479, 2.2768, 0.1489),
            (1.4579, 1.0241, 0.2453),
            (1.8811, 1.4062, 0.1992),
            (0.7020, 2.2401, 0.0853),
            (1.4080, 1.5556, 0.0789),
            (1.2993, 2.1589, 0.1075),
        ]
    )
    form_y = make_3pl_form(
        [
            (0.4416, -1.3349, 0.1559),
            (0.5730, -1.3210, 0.1913),
            (0.5987, -0.7098, 0.1177),
            (0.6041, -0.3539, 0.0818),
            (0.9902, 0.5320, 0.3024),
            (0.8081, -0.1156, 0.0648),
            (0.4140, 2.5538, 0.2410),
            (1.3554, 0.5811, 0.2243),
            (1.0417, 0.9392, 0.1651),
            (0.6336, 1.8960, 0.0794),
            (1.1347, 1.0790, 0.0630),
            (0.9255, 2.1337, 0.1259),
        ]
    )
    points = [-4.0, -3.111, -2.222, -1.333, -0.4444, 0.4444, 1.333, 2.222, 3.111, 4.0]
    quad_x = QuadratureRule(
        points,
        [0.0001008, 0.002760, 0.03021, 0.1420, 0.3149,
         0.3158, 0.1542, 0.03596, 0.003925, 0.0001862],
    )
    quad_y = QuadratureRule(
        points,
        [0.0001173, 0.003242, 0.03449, 0.1471, 0.3148,
         0.3110, 0.1526, 0.03406, 0.002510, 0.0001116],
    )
    return form_x, form_y, quad_x, quad_y


@pytest.fixture
def mixed_format_forms():
    """Twelve 3PL and five GPCM items, STUIRT example 2."""
    form_x = make_3pl_form(
        [
            (0.751335, -0.897391, 0.244001),
            (0.955947, -0.811477, 0.242883),
            (0.497206, -0.858681, 0.260893),
            (0.724000, -0.123911, 0.243497),
            (0.865200, 0.205889, 0.319135),
            (0.658129, 0.555228, 0.277826),
            (1.082118, 0.950549, 0.157979),
            (0.988294, 1.377501, 0.084828),
            (1.248923, 1.614355, 0.181874),
            (1.116682, 2.353932, 0.246856),
            (0.438171, 3.217965, 0.309243),
            (1.082206, 4.441864, 0.192339),
        ],
        prefix="v",
    )
    form_x["v13"] = GeneralizedPartialCredit.from_thresholds(0.269994, 0.003998, [1.097268, -1.097268])
    form_x["v14"] = GeneralizedPartialCredit.from_thresholds(0.972506, 1.632662, [0.106514, -0.106514])
    form_x["v15"] = GeneralizedPartialCredit.from_thresholds(0.378812, 3.464657, [2.102301, -2.102301])
    form_x["v16"] = GeneralizedPartialCredit.from_thresholds(
        0.537706, 1.010053, [-0.476513, 1.081282, -0.604770]
    )
    form_x["v17"] = GeneralizedPartialCredit.from_thresholds(
        0.554506, 2.432938, [1.007525, -0.197767, -0.809758]
    )

    form_y = make_3pl_form(
        [
            (0.887276, -1.334798, 0.134406),
            (1.184412, -1.129004, 0.237765),
            (0.609412, -1.464546, 0.151393),
            (0.923812, -0.576435, 0.240097),
            (0.822776, -0.476357, 0.192369),
            (0.707818, -0.235189, 0.189557),
            (1.306976, 0.242986, 0.165553),
            (1.295471, 0.598029, 0.090557),
            (1.366841, 0.923206, 0.172993),
            (1.389624, 1.380666, 0.238008),
            (0.293806, 2.028070, 0.203448),
            (0.885347, 3.152928, 0.195473),
        ],
        prefix="v",
    )
    form_y["v13"] = GeneralizedPartialCredit.from_thresholds(0.346324, -0.494115, [0.893232, -0.893232])
    form_y["v14"] = GeneralizedPartialCredit.from_thresholds(1.252012, 0.856264, [0.099750, -0.099750])
    form_y["v15"] = GeneralizedPartialCredit.from_thresholds(0.392282, 2.825801, [1.850498, -1.850498])
    form_y["v16"] = GeneralizedPartialCredit.from_thresholds(
        0.660841, 0.342977333333333, [-0.300428333333333, 0.761845666666667, -0.461417333333333]
    )
    form_y["v17"] = GeneralizedPartialCredit.from_thresholds(
        0.669612, 1.643267, [1.001974, -0.107221, -0.894753]
    )

    quad = QuadratureRule.uniform(25, -3.0, 3.0)
    return form_x, form_y, quad, quad


@pytest.fixture
def pcm_forms():
    """Twenty PCM items per form, D = 1; items 2, 4, ..., 20 are common."""
    b_x = [
        -0.126698, -0.452035, 0.175118, -1.021788, 2.348223, -0.664511, 1.120737,
        -1.559595, -0.539700, 0.216158, 1.041713, 0.327842, -0.154006, -0.067132,
        0.152685, 0.553739, -0.549400, 0.524321, -0.824800, -0.500870,
    ]
    tau_x = [
        [-1.006692, -0.384241, -0.11184, 1.502773],
        [-0.892028, -0.412217, 0.131183, 1.173062],
        [-0.902681, -0.478009, -0.060514, 1.441203],
        [-0.697221, -0.355219, 0.241353, 0.811086],
        [-0.765447, -0.215056, 0.30764, 0.672862],
        [-1.256809, -0.639672, 0.454919, 1.441562],
        [-0.97042, -0.498912, 0.181986, 1.287346],
        [-0.715925, -0.406233, 0.14064, 0.981519],
        [-0.912287, -0.423487, 0.057775, 1.277999],
        [-0.654154, -0.591691, -0.050277, 1.296121],
        [-1.148247, -0.484591, 0.31044, 1.322397],
        [-0.703323, -0.434325, 0.030546, 1.107102],
        [-0.900466, -0.378019, -0.013421, 1.291906],
        [-0.843232, -0.488057, 0.325844, 1.005446],
        [-0.945509, -0.374092, 0.201312, 1.118289],
        [-0.842559, -0.28073, 0.106888, 1.0164],
        [-0.609433, -0.338068, -0.132249, 1.079751],
        [-0.953671, -0.35736, -0.066847, 1.377878],
        [-0.693169, -0.467339, 0.250826, 0.909682],
        [-1.08369, -0.576577, 0.312981, 1.347287],
    ]
    b_y = [
        -0.183319, -0.455426, 0.199837, -1.010026, 2.370949, -0.655650, 1.081711,
        -1.562643, -0.550489, 0.202217, 1.046472, 0.328282, -0.153042, -0.022518,
        0.171760, 0.576931, -0.555202, 0.533761, -0.839659, -0.523948,
    ]
    tau_y = [
        [-0.964842, -0.362028, -0.138807, 1.465677],
        [-0.896732, -0.347413, 0.048856, 1.195289],
        [-0.909942, -0.435077, -0.015794, 1.360813],
        [-0.888723, -0.258386, 0.316272, 0.830838],
        [-0.814509, -0.39508, 0.336595, 0.872994],
        [-1.23464, -0.617245, 0.403489, 1.448396],
        [-0.960485, -0.506704, 0.157772, 1.309417],
        [-0.904363, -0.271877, 0.221333, 0.954907],
        [-0.841918, -0.469447, 0.048954, 1.262411],
        [-0.643959, -0.608275, 0.022541, 1.229694],
        [-1.102283, -0.478282, 0.31218, 1.268385],
        [-0.806433, -0.396817, 0.047875, 1.155375],
        [-0.797682, -0.464661, -0.036477, 1.298819],
        [-0.870971, -0.424819, 0.204283, 1.091507],
        [-0.878, -0.444777, 0.207881, 1.114896],
        [-0.81907, -0.279071, 0.065254, 1.032887],
        [-0.676482, -0.41991, -0.042723, 1.139115],
        [-0.830071, -0.444677, -0.051378, 1.326127],
        [-0.770342, -0.454123, 0.324907, 0.899557],
        [-1.026435, -0.590928, 0.378912, 1.238451],
    ]
    common = range(1, 20, 2)
    form_x = {f"i{j + 1}": PartialCreditModel(b_x[j], tau_x[j], D=1.0) for j in common}
    form_y = {f"i{j + 1}": PartialCreditModel(b_y[j], tau_y[j], D=1.0) for j in common}
    quad = QuadratureRule.uniform(51, -4.0, 4.0)
    return form_x, form_y, quad, quad


@pytest.fixture
def true_score_forms():
    """Two 36 item 3PL forms on a common scale, Kolen and Brennan (2014) Table 6.6."""
    form_x = make_3pl_form(
        [
            (0.467344, -2.616539, 0.175056),
            (0.670924, -1.068342, 0.116490),
            (0.386976, -1.339358, 0.208748),
            (1.228024, 0.064115, 0.282599),
            (0.828161, -0.701780, 0.262510),
            (0.496452, -1.511753, 0.203834),
            (0.731571, 0.030429, 0.322391),
            (0.973113, -0.657195, 0.220907),
            (0.641447, -0.479277, 0.159961),
            (0.779740, 0.688159, 0.364807),
            (0.815589, 0.344648, 0.239862),
            (0.563967, -0.444704, 0.123961),
            (1.047915, -0.014127, 0.253470),
            (0.892128, 0.422782, 0.156932),
            (0.908926, 0.626040, 0.298628),
            (0.781655, 0.213016, 0.252099),
            (0.759750, 0.098919, 0.227257),
            (0.822383, -0.274926, 0.053538),
            (0.557961, -0.051057, 0.120098),
            (0.897580, 0.610857, 0.203621),
            (0.295784, 2.173474, 0.148927),
            (0.716916, 0.742542, 0.233231),
            (0.947343, 0.180908, 0.064409),
            (1.239634, 0.700229, 0.245270),
            (0.436801, 1.117559, 0.142681),
            (0.781728, 0.763879, 0.087920),
            (1.599493, 1.149537, 0.199245),
            (1.279241, 1.270811, 0.164220),
            (0.821706, 1.311960, 0.143102),
            (0.596854, 2.130355, 0.085290),
            (1.075705, 1.701967, 0.244298),
            (0.728471, 1.511532, 0.086474),
            (1.197162, 1.325326, 0.078897),
            (0.493857, 3.580113, 0.139884),
            (0.787070, 3.165387, 0.108961),
            (1.104752, 2.034859, 0.107530),
        ]
    )
    form_y = make_3pl_form(
        [
            (0.870350, -1.450715, 0.157647),
            (0.462772, -0.406996, 0.109378),
            (0.441595, -1.334933, 0.155883),
            (0.544796, -0.901734, 0.138071),
            (0.619973, -1.486483, 0.211368),
            (0.572995, -1.321004, 0.191298),
            (1.175228, 0.069050, 0.294746),
            (0.445023, 0.232402, 0.272323),
            (0.598719, -0.709831, 0.117663),
            (0.847924, -0.425342, 0.144462),
            (1.031996, -0.818383, 0.093584),
            (0.604125, -0.353942, 0.081759),
            (0.829722, -0.019137, 0.128310),
            (0.725171, -0.315511, 0.085425),
            (0.990164, 0.531956, 0.302443),
            (0.774935, 0.539442, 0.217930),
            (0.594230, 0.898656, 0.229885),
            (0.808079, -0.115649, 0.064791),
            (0.964044, -0.194763, 0.163258),
            (0.783557, 0.350592, 0.129939),
            (0.413973, 2.553812, 0.240967),
            (0.761758, -0.158110, 0.113708),
            (1.195895, 0.505649, 0.239728),
            (1.355437, 0.581109, 0.224322),
            (1.186899, 0.622889, 0.257697),
            (1.029556, 0.389830, 0.185611),
            (1.041731, 0.939158, 0.165121),
            (1.205473, 1.135046, 0.232287),
            (0.969740, 0.697642, 0.107035),
            (0.633562, 1.896027, 0.079396),
            (1.082216, 1.386423, 0.185511),
            (1.019458, 0.919670, 0.102719),
            (1.134661, 1.079013, 0.063009),
            (1.194845, 1.841148, 0.099913),
            (1.196146, 2.029683, 0.083187),
            (0.925521, 2.133706, 0.125873),
        ]
    )
    return form_x, form_y


@pytest.fixture
def five_item_forms():
    """Five 2PL items whose Form X locations sit 0.5 below Form Y."""
    a = [0.8, 1.0, 1.2, 1.5, 0.9]
    b_y = [-1.5, -0.5, 0.0, 0.7, 1.4]
    form_y = {f"item{i + 1}": ThreeParameterLogistic(a[i], b_y[i], n_parameters=2) for i in range(5)}
    form_x = {
        f"item{i + 1}": ThreeParameterLogistic(a[i], b_y[i] - 0.5, n_parameters=2)
        for i in range(5)
    }
    quad = QuadratureRule.normal(21, -4.0, 4.0)
    return form_x, form_y, quad, quad


@pytest.fixture
def graded_item():
    """Four category graded response item."""
    return GradedResponseModel(1.1, [-1.2, 0.1, 1.3])
