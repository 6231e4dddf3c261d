from abc import ABC


# each `Rewriter` defines what an `ApplicationPoint` is for it, and registers
# its type as a virtual subclass
ApplicationPoint = type('ApplicationPoint', (ABC,), {})
