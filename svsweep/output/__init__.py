from . import bedpe, sam_output, vcf_attributes, vcf_output

__all__ = ["bedpe", "sam_output", "vcf_attributes", "vcf_output"]
