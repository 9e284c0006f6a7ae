from typing import Dict, Type, Union

from facet_shell.core.material import Material
from facet_shell.core.mesh.entities import ElementSet
from facet_shell.elements.isop import ShellIsoP
from facet_shell.elements.shell import ShellFEMM, Stabilization, Thickness
from facet_shell.elements.sri import ShellSRI


class ElementFactory:
    FEMM_MAP: Dict[Stabilization, Type[ShellFEMM]] = {
        Stabilization.ENERGY_SAMPLING: ShellSRI,
        Stabilization.PROJECTED_NORMAL: ShellIsoP,
    }

    @staticmethod
    def get_femm(
        element_set: ElementSet,
        material: Material,
        thickness: Thickness,
        stabilization: Union[Stabilization, str] = Stabilization.ENERGY_SAMPLING,
        **options,
    ) -> ShellFEMM:
        """
        Build the shell formulation for an element set.

        Parameters
        ----------
        element_set : ElementSet
            Elements to be handled (T3 or Q4).
        material : Material
            Material provider.
        thickness : float or callable
            Shell thickness.
        stabilization : Stabilization or str, optional
            Strategy, by default energy sampling.
        **options
            Forwarded to the formulation: ``integration_rule``,
            ``drilling_stiffness_scale``, ``shear_correction``.

        Raises
        ------
        ValueError
            If the stabilization is unknown.
        """
        try:
            stabilization = Stabilization(stabilization)
        except ValueError:
            valid = ", ".join(s.value for s in Stabilization)
            raise ValueError(
                f"Unknown stabilization '{stabilization}'. Valid options: {valid}"
            ) from None
        femm_class = ElementFactory.FEMM_MAP[stabilization]
        return femm_class(element_set, material, thickness, **options)


def make_femm(
    element_set: ElementSet,
    material: Material,
    thickness: Thickness,
    stabilization: Union[Stabilization, str] = Stabilization.ENERGY_SAMPLING,
    **options,
) -> ShellFEMM:
    """Shortcut for :meth:`ElementFactory.get_femm`."""
    return ElementFactory.get_femm(element_set, material, thickness, stabilization, **options)
